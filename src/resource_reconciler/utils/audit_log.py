"""Audit logging for reconciliations.

Every finished reconciliation is written as one JSON line:
- Timestamped entries for create, update, delete and read
- Outcome, failing phase and cause
- Changed fields and call counters
- Separate audit log file
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..reconcile.schema import ReconcileResult

# Dedicated audit logger
audit_logger = logging.getLogger("reconciler.audit")

DEFAULT_AUDIT_DIR = "~/.reconciler"


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.reconciler/

    Returns:
        Path of the audit log file
    """
    if log_dir is None:
        log_dir = os.path.expanduser(DEFAULT_AUDIT_DIR)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)

    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False

    return audit_file


@dataclass
class ReconcileRecord:
    """Record of one reconciliation."""
    timestamp: str
    resource_type: str
    intent: Optional[str]
    resource_id: Optional[str]
    state: str
    success: bool
    removed: bool = False
    changed_fields: Optional[list[str]] = None
    mutating_calls: int = 0
    probes: int = 0
    duration_ms: float = 0.0
    diagnostics: list[str] = field(default_factory=list)
    failure: Optional[dict] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ReconcileRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)

    @classmethod
    def from_result(cls, result: "ReconcileResult", duration_ms: float = 0.0) -> "ReconcileRecord":
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            resource_type=result.resource_type,
            intent=result.intent.value if result.intent else None,
            resource_id=result.resource_id,
            state=result.state.value,
            success=result.success,
            removed=result.removed,
            changed_fields=sorted(result.change_set.fields) if result.change_set else None,
            mutating_calls=result.mutating_calls,
            probes=result.probes,
            duration_ms=round(duration_ms, 2),
            diagnostics=result.diagnostics.to_list(),
            failure=result.failure.to_dict() if result.failure else None,
        )


def log_reconcile(result: "ReconcileResult", duration_ms: float = 0.0) -> ReconcileRecord:
    """Write the outcome of a reconciliation to the audit log.

    Nothing reaches disk until setup_audit_logging() has installed a handler.

    Returns:
        The ReconcileRecord that was logged
    """
    record = ReconcileRecord.from_result(result, duration_ms)
    audit_logger.info(record.to_json())
    return record


def get_recent_records(
    log_file: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    intent: Optional[str] = None,
    limit: int = 100,
) -> list[ReconcileRecord]:
    """Read recent reconciliations from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.reconciler/audit.log
        resource_type: Filter by resource type
        resource_id: Filter by resource identity
        intent: Filter by intent (create, update, delete)
        limit: Maximum number of records to return

    Returns:
        List of ReconcileRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), "audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ReconcileRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if resource_type and record.resource_type != resource_type:
                continue
            if resource_id and record.resource_id != resource_id:
                continue
            if intent and record.intent != intent:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
