"""Schema definitions for the reconciliation engine.

Defines the lifecycle enums, probe results, change sets and the result
returned to callers.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import ReconcileError
from ..mapper import Diagnostics, ObjectNode


class Intent(str, Enum):
    """What a reconciliation is trying to achieve."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Phase(str, Enum):
    """Step of a reconciliation in which a failure happened."""
    MUTATE = "mutate"
    POLL = "poll"


class ReconcileState(str, Enum):
    """State of a reconciliation."""
    PENDING = "pending"
    POLLING = "polling"
    CONVERGED = "converged"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ReconcileState.CONVERGED, ReconcileState.FAILED)


class FailureReason(str, Enum):
    """Why a reconciliation failed."""
    ERROR = "error"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    UNEXPECTED_STATE = "unexpected_state"


class ResourceStatus(str, Enum):
    """Lifecycle status token reported by the prober."""
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    DELETING = "DELETING"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> "ResourceStatus":
        """Map a service status string onto a token."""
        if raw is None:
            return cls.UNKNOWN
        key = raw.strip().upper()
        if key == "NORMAL":
            return cls.ACTIVE
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one remote read."""
    status: ResourceStatus
    payload: Optional[dict[str, Any]] = None
    update_token: Optional[str] = None
    resource_id: Optional[str] = None
    raw_status: Optional[str] = None

    @property
    def gone(self) -> bool:
        return self.status == ResourceStatus.NOT_FOUND


# Sentinel: the object is confirmed absent
GONE = ProbeResult(status=ResourceStatus.NOT_FOUND)


@dataclass(frozen=True)
class WaitConfig:
    """Poll loop settings for one intent."""
    target: tuple[ResourceStatus, ...]
    pending: tuple[ResourceStatus, ...] = ()
    timeout: float = 1800.0
    interval: float = 5.0
    not_found_checks: int = 20
    continuous_target_occurrence: int = 1


@dataclass(frozen=True)
class Timeouts:
    """Per-intent deadlines in seconds."""
    create: float = 1800.0
    update: float = 1800.0
    delete: float = 1800.0

    def for_intent(self, intent: Intent) -> float:
        return getattr(self, intent.value)


@dataclass
class ChangeSet:
    """Top-level fields whose declared value differs from recorded state."""
    fields: set[str] = field(default_factory=set)

    @property
    def empty(self) -> bool:
        return len(self.fields) == 0

    def __contains__(self, name: str) -> bool:
        return name in self.fields

    def __len__(self) -> int:
        return len(self.fields)


class ReconcileFailure(ReconcileError):
    """A reconciliation ended in FAILED.

    Carries enough context to resume idempotently: identity, intent, the
    failing phase and the underlying cause.
    """

    def __init__(
        self,
        intent: Intent,
        phase: Phase,
        reason: FailureReason,
        resource_type: str,
        resource_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.intent = intent
        self.phase = phase
        self.reason = reason
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.cause = cause
        super().__init__(self._message())

    def _message(self) -> str:
        target = f"{self.resource_type} ({self.resource_id})" if self.resource_id else self.resource_type
        action = {
            (Intent.CREATE, Phase.MUTATE): "creating",
            (Intent.CREATE, Phase.POLL): "waiting for creation of",
            (Intent.UPDATE, Phase.MUTATE): "updating",
            (Intent.UPDATE, Phase.POLL): "waiting for update of",
            (Intent.DELETE, Phase.MUTATE): "deleting",
            (Intent.DELETE, Phase.POLL): "waiting for deletion of",
        }[(self.intent, self.phase)]
        return f"{action} {target}: {self.reason.value}: {self.cause}"

    def to_dict(self) -> dict:
        return {
            "intent": self.intent.value,
            "phase": self.phase.value,
            "reason": self.reason.value,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "cause": str(self.cause) if self.cause else None,
        }


@dataclass
class ReconcileResult:
    """Result of one reconciliation."""
    intent: Optional[Intent]
    resource_type: str
    state: ReconcileState = ReconcileState.PENDING
    resource_id: Optional[str] = None
    update_token: Optional[str] = None
    tree: Optional[ObjectNode] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    change_set: Optional[ChangeSet] = None
    failure: Optional[ReconcileFailure] = None
    removed: bool = False
    mutating_calls: int = 0
    probes: int = 0

    @property
    def success(self) -> bool:
        return self.state == ReconcileState.CONVERGED

    def raise_for_failure(self) -> None:
        """Raise the ReconcileFailure if the reconciliation failed."""
        if self.failure is not None:
            raise self.failure

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "intent": self.intent.value if self.intent else None,
            "resource_type": self.resource_type,
            "state": self.state.value,
            "success": self.success,
            "resource_id": self.resource_id,
            "update_token": self.update_token,
            "config": self.tree.to_python() if self.tree is not None else None,
            "diagnostics": self.diagnostics.to_list(),
            "changed_fields": sorted(self.change_set.fields) if self.change_set else None,
            "failure": self.failure.to_dict() if self.failure else None,
            "removed": self.removed,
            "mutating_calls": self.mutating_calls,
            "probes": self.probes,
        }
