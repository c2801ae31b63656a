from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

DEFAULT_TIMEOUT_SECONDS = 300


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_timeout(timeout_seconds) -> int:
    """Unset or non-positive timeouts fall back to the default."""
    if timeout_seconds is None or timeout_seconds <= 0:
        return DEFAULT_TIMEOUT_SECONDS
    return int(timeout_seconds)


class ExecutionStatus(str, Enum):
    # Never produced by dispatch; executions start out RUNNING.
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self):
        return self in (ExecutionStatus.SUCCEEDED, ExecutionStatus.FAILED)


@dataclass
class Command:
    id: str
    name: str
    script: str
    description: str = ""
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    created_at: Optional[datetime] = None


@dataclass
class Node:
    id: str
    name: str
    address: str


@dataclass
class Execution:
    id: str
    command_id: str
    node_id: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    duration_ms: int = 0


def _require(payload, key, kind, optional=False):
    if key not in payload or payload[key] is None:
        if optional:
            return None
        raise ValueError(f"missing field {key!r}")
    value = payload[key]
    # bool is an int subclass; JSON true/false is not a valid count
    if kind is int and isinstance(value, bool):
        raise ValueError(f"field {key!r} must be int")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be {kind.__name__}")
    return value


@dataclass
class RunRequest:
    """Body of ``POST /api/v1/exec`` sent from the bastion to a daemon."""

    script: str
    timeout_seconds: int
    working_dir: Optional[str] = None

    def to_dict(self):
        data = {"script": self.script, "timeout_seconds": self.timeout_seconds}
        if self.working_dir:
            data["working_dir"] = self.working_dir
        return data

    @classmethod
    def from_dict(cls, payload):
        if not isinstance(payload, dict):
            raise ValueError("payload must be a JSON object")
        timeout = _require(payload, "timeout_seconds", int, optional=True)
        return cls(
            script=_require(payload, "script", str),
            timeout_seconds=timeout or 0,
            working_dir=_require(payload, "working_dir", str, optional=True),
        )


@dataclass
class RunResult:
    """Raw outcome of one script run on a daemon."""

    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int

    def to_dict(self):
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, payload):
        if not isinstance(payload, dict):
            raise ValueError("response must be a JSON object")
        return cls(
            stdout=_require(payload, "stdout", str),
            stderr=_require(payload, "stderr", str),
            exit_code=_require(payload, "exit_code", int),
            duration_ms=_require(payload, "duration_ms", int),
        )
