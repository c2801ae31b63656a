import logging
import os
import signal
import subprocess
import time

from bastion.cancellation import CancellationToken
from bastion.errors import ProcessError
from bastion.models.entities import RunResult, normalize_timeout

logger = logging.getLogger(__name__)

DEFAULT_SHELL = ("bash", "-lc")
# How often the wait loop wakes up to check for cancellation
POLL_INTERVAL = 0.1
# How long to wait for pipes to drain once the process group is killed
KILL_GRACE_SECONDS = 2


def _elapsed_ms(start):
    return int((time.monotonic() - start) * 1000)


def _spawn(script, working_dir, shell):
    try:
        return subprocess.Popen(
            [*shell, script],
            cwd=working_dir or None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except OSError as e:
        raise ProcessError(str(e)) from e


def _kill_group(process):
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def _wait(process, deadline, token):
    """Wait for the process; return (stdout, stderr, failure reason or None)."""
    while True:
        if time.monotonic() >= deadline:
            return None, None, "timeout"
        if token.cancelled:
            return None, None, token.describe()
        try:
            stdout, stderr = process.communicate(
                timeout=min(POLL_INTERVAL, max(0.0, deadline - time.monotonic()))
            )
            return stdout, stderr, None
        except subprocess.TimeoutExpired:
            continue


def run_script(script, working_dir=None, timeout_seconds=0, token=None, shell=DEFAULT_SHELL):
    """Run ``script`` in a shell under a deadline and capture its outcome.

    A blank script is rejected without spawning anything. On timeout or
    cancellation the whole process group is killed and the exit code is 1.
    """
    if not script or not script.strip():
        return RunResult(stdout="", stderr="empty script", exit_code=1, duration_ms=0)

    timeout_seconds = normalize_timeout(timeout_seconds)
    token = token or CancellationToken()

    start = time.monotonic()
    deadline = start + timeout_seconds
    try:
        process = _spawn(script, working_dir, shell)
    except ProcessError as e:
        logger.warning(f"Failed to start script: {e.message}")
        return RunResult(stdout="", stderr=e.message, exit_code=1, duration_ms=_elapsed_ms(start))

    logger.info(f"Started pid {process.pid} (timeout: {timeout_seconds}s)")
    stdout, stderr, failure = _wait(process, deadline, token)

    if failure is not None:
        if failure == "timeout":
            failure = f"script timed out after {timeout_seconds}s"
        logger.warning(f"Killing process group {process.pid}: {failure}")
        _kill_group(process)
        try:
            stdout, stderr = process.communicate(timeout=KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            # A descendant left the group and still holds the pipes open
            stdout, stderr = "", ""
        duration_ms = _elapsed_ms(start)
        return RunResult(
            stdout=stdout or "",
            stderr=stderr or failure,
            exit_code=1,
            duration_ms=duration_ms,
        )

    duration_ms = _elapsed_ms(start)
    exit_code = process.returncode
    stdout = stdout or ""
    stderr = stderr or ""

    if exit_code < 0:
        reason = f"terminated by signal {-exit_code}"
        exit_code = 1
        stderr = stderr or reason
    elif exit_code != 0 and not stderr:
        stderr = f"exit status {exit_code}"

    if exit_code == 0:
        logger.info(f"Script completed successfully ({duration_ms}ms)")
    else:
        logger.warning(f"Script failed with return code {exit_code} ({duration_ms}ms)")

    return RunResult(stdout=stdout, stderr=stderr, exit_code=exit_code, duration_ms=duration_ms)
