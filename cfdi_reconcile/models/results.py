from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Result models for a reconciliation run.

Counts are produced independently (spreadsheet rows by the row counter, valid
JSON records by the aggregator) and only meet in ``ReconcileResult``.
"""

__all__ = [
    "IssueKind",
    "RecordIssue",
    "FileStat",
    "AggregateResult",
    "ReconcileResult",
]


class IssueKind(Enum):
    """Classification of a per-record problem.

    DECODE and VALIDATION skip the record; KEY_NOT_FOUND is advisory only.
    """
    DECODE = "DECODE_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    KEY_NOT_FOUND = "KEY_NOT_FOUND"


@dataclass(frozen=True)
class RecordIssue:
    """One per-record diagnostic.

    Attributes:
        file: JSON file name
        ordinal: 1-based element position inside the file
        kind: issue classification
        message: decoder / validator / lookup message
    """
    file: str
    ordinal: int
    kind: IssueKind
    message: str

    def describe(self) -> str:
        return f"{self.kind.value} {self.file}: record {self.ordinal}: {self.message}"


@dataclass
class FileStat:
    """Per-file counters filled while a file is streamed."""
    file_name: str
    valid: int = 0
    decode_errors: int = 0
    validation_errors: int = 0
    keys_checked: int = 0
    keys_missing: int = 0

    @property
    def skipped(self) -> int:
        return self.decode_errors + self.validation_errors

    def record(self, issue: RecordIssue) -> None:
        if issue.kind is IssueKind.DECODE:
            self.decode_errors += 1
        elif issue.kind is IssueKind.VALIDATION:
            self.validation_errors += 1
        else:
            self.keys_missing += 1


@dataclass(frozen=True)
class AggregateResult:
    """Directory walk outcome."""
    total_valid: int
    file_stats: list[FileStat] = field(default_factory=list)

    @property
    def files(self) -> int:
        return len(self.file_stats)

    @property
    def skipped_records(self) -> int:
        return sum(s.skipped for s in self.file_stats)

    @property
    def keys_missing(self) -> int:
        return sum(s.keys_missing for s in self.file_stats)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one spreadsheet vs JSON pass."""
    excel_rows: int
    json_records: int
    files: int
    skipped_records: int
    key_count: int  # distinct keys extracted (0 when the cross-check is off)
    keys_missing: int
    elapsed_seconds: float

    @property
    def matched(self) -> bool:
        return self.excel_rows == self.json_records
