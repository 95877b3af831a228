"""Reconcile Engine - lifecycle state machine for remote resources.

Workflow per invocation:
1. Build the change set (update only)
2. Expand the declared tree into a payload
3. Issue the mutating call, retrying transient errors
4. Poll the status until the target is reached or time runs out
5. Flatten the final payload back into a tree

Usage:
    from resource_reconciler.reconcile import ReconcileEngine

    engine = ReconcileEngine({"service_action": client})
    result = await engine.create("service_action", config)
"""

from .changeset import ChangeSetBuilder, normalize, summarize_changes
from .engine import ReconcileEngine, failure_reason
from .prober import StatusProber
from .schema import (
    GONE,
    ChangeSet,
    FailureReason,
    Intent,
    Phase,
    ProbeResult,
    ReconcileFailure,
    ReconcileResult,
    ReconcileState,
    ResourceStatus,
    Timeouts,
    WaitConfig,
)
from .waiter import StatusWaiter

__all__ = [
    # Engine
    "ReconcileEngine",
    "failure_reason",
    # Components
    "ChangeSetBuilder",
    "normalize",
    "summarize_changes",
    "StatusProber",
    "StatusWaiter",
    # Schema
    "GONE",
    "ChangeSet",
    "FailureReason",
    "Intent",
    "Phase",
    "ProbeResult",
    "ReconcileFailure",
    "ReconcileResult",
    "ReconcileState",
    "ResourceStatus",
    "Timeouts",
    "WaitConfig",
]
