from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DISPATCH = "dispatch"
    PROCESS = "process"


class BastionError(Exception):
    """Base error. Callers branch on ``kind`` rather than the message text."""

    kind = None

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(BastionError):
    """Bad input, rejected before any state is written."""

    kind = ErrorKind.VALIDATION


class NotFoundError(BastionError):
    """Unknown command/node/execution id."""

    kind = ErrorKind.NOT_FOUND


class DispatchError(BastionError):
    """The round trip to a node failed.

    The execution has already been persisted as ``failed`` when this is
    raised; it travels with the error so the caller keeps the record.
    """

    kind = ErrorKind.DISPATCH

    def __init__(self, message, execution=None):
        super().__init__(message)
        self.execution = execution


class ProcessError(BastionError):
    """Script process could not be started. Only raised inside the runner."""

    kind = ErrorKind.PROCESS
