"""Error types raised by transports and the reconciliation engine."""
from typing import Optional


class ReconcileError(Exception):
    """Base class for all reconciler errors."""
    pass


# --- Remote errors (raised by ResourceClient implementations) ---

class RemoteError(ReconcileError):
    """A remote call failed.

    Args:
        message: Human-readable error message from the service
        code: Service error code (e.g. "ResourceInUseException")
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


class NotFoundError(RemoteError):
    """The remote object does not exist."""

    def __init__(self, message: str = "resource not found", code: Optional[str] = "ResourceNotFoundException"):
        super().__init__(message, code)


class RetryableRemoteError(RemoteError):
    """A transient failure the transport already knows is safe to retry."""
    pass


class NonRetryableRemoteError(RemoteError):
    """A failure that must abort the current phase."""
    pass


def matches_signature(error: BaseException, signatures: tuple[str, ...]) -> bool:
    """Check whether an error matches one of the transient error signatures.

    A signature matches when it equals the error code or appears in the
    error message.
    """
    if isinstance(error, NonRetryableRemoteError):
        return False
    if isinstance(error, RetryableRemoteError):
        return True
    if not isinstance(error, RemoteError):
        return False
    for signature in signatures:
        if error.code == signature or signature in error.message:
            return True
    return False


# --- Poll errors (raised by StatusWaiter) ---

class WaitError(ReconcileError):
    """Base class for poll loop failures."""

    def __init__(self, message: str, last_status: Optional[str] = None):
        super().__init__(message)
        self.last_status = last_status


class WaitTimeoutError(WaitError):
    """The poll deadline passed before the target status was reached."""

    def __init__(self, timeout: float, last_status: Optional[str] = None, probes: int = 0):
        super().__init__(
            f"timeout while waiting for state (last state: {last_status or 'none'}, "
            f"timeout: {timeout:g}s, probes: {probes})",
            last_status,
        )
        self.timeout = timeout
        self.probes = probes


class UnexpectedStateError(WaitError):
    """The prober reported a status that is neither pending nor target."""

    def __init__(self, status: str, expected: list[str]):
        super().__init__(
            f"unexpected state '{status}', wanted target '{', '.join(expected) or 'gone'}'",
            status,
        )
        self.expected = expected


class NotFoundChecksExceeded(WaitError):
    """The object stayed invisible for more probes than tolerated."""

    def __init__(self, checks: int):
        super().__init__(f"couldn't find resource ({checks} retries)")
        self.checks = checks


# --- Mapping errors ---

class MappingError(ReconcileError):
    """Declared configuration cannot be expanded into a request payload."""

    def __init__(self, resource_type: str, problems: list[str]):
        super().__init__(f"cannot expand {resource_type}: {'; '.join(problems)}")
        self.problems = problems
