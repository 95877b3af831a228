"""Utility modules for retries, timestamps, logging and auditing."""
from .audit_log import ReconcileRecord, get_recent_records, log_reconcile, setup_audit_logging
from .logging_config import perf_logger, setup_logging, timed, timed_section
from .retry import RetryPolicy, call_with_retry
from .timefmt import TimestampError, format_timestamp, normalize_timestamp, parse_timestamp

__all__ = [
    "ReconcileRecord",
    "get_recent_records",
    "log_reconcile",
    "setup_audit_logging",
    "perf_logger",
    "setup_logging",
    "timed",
    "timed_section",
    "RetryPolicy",
    "call_with_retry",
    "TimestampError",
    "format_timestamp",
    "normalize_timestamp",
    "parse_timestamp",
]
