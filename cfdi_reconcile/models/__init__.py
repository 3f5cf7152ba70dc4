"""Domain models for the CFDI reconciliation tool."""

from .config_models import CrossCheckConfig, HeaderMapping, ReconcileSettings
from .record import RECORD_FIELDS, UUID_FIELDS, CfdiRecord
from .results import AggregateResult, FileStat, IssueKind, RecordIssue, ReconcileResult

__all__ = [
    # Record
    "CfdiRecord",
    "RECORD_FIELDS",
    "UUID_FIELDS",
    # Configuration models
    "CrossCheckConfig",
    "HeaderMapping",
    "ReconcileSettings",
    # Results
    "AggregateResult",
    "FileStat",
    "IssueKind",
    "RecordIssue",
    "ReconcileResult",
]
