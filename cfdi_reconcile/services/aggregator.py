from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from ..jsonio.stream import FormatError, JsonRecordStream
from ..models.record import UUID_FIELDS
from ..models.results import AggregateResult, FileStat, IssueKind, RecordIssue
from .progress import ProgressTracker
from .validator import validate_record

"""Directory aggregation of valid JSON records.

Walks a directory tree, streams every ``.json`` file through the decoder and
the validator, and sums the per-file valid counts.

Error policy:
- per-record problems (decode, unknown field, failed validation) are logged
  and counted in the file's ``FileStat``; the stream continues
- a key missing from the spreadsheet key set is a warning only
- a file-level failure (open, framing, I/O) raises ``AggregationError`` naming
  the file and stops the walk; there is no retry
"""

__all__ = [
    "AggregationError",
    "DEFAULT_SAMPLE_SIZE",
    "iter_json_files",
    "normalise_key",
    "aggregate_file",
    "aggregate_all",
]

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 5


class AggregationError(Exception):
    """Fatal error while walking the directory or reading one file."""


def _raise_walk_error(err: OSError) -> None:
    raise AggregationError(f"cannot walk {err.filename}: {err.strerror or err}") from err


def iter_json_files(root: Path | str, extensions: Iterable[str] = (".json",)) -> Iterator[Path]:
    """Yield regular files under ``root`` whose suffix is in ``extensions``.

    Order is deterministic (sorted per directory). A ``root`` that is itself a
    matching file is yielded on its own.
    """
    root = Path(root)
    exts = tuple(extensions)
    if root.is_file():
        if root.suffix in exts:
            yield root
        return
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            p = Path(dirpath) / name
            if p.suffix in exts and p.is_file():
                yield p


def normalise_key(text: str, key_field: str) -> str:
    """Lookup form of a key: UUID text is lower-cased, other keys are kept as is."""
    return text.lower() if key_field in UUID_FIELDS else text


def _key_text(value: object, key_field: str) -> str:
    return "" if value is None else normalise_key(str(value), key_field)


def aggregate_file(
    path: Path,
    key_set: set[str] | frozenset[str] | None = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    key_field: str = "cfdi_id",
) -> FileStat:
    """Decode and validate one file.

    Args:
        path: JSON array or NDJSON file
        key_set: spreadsheet keys for the advisory cross-check (None disables it),
            already in ``normalise_key`` form
        sample_size: number of leading decoded records checked against ``key_set``
        key_field: record attribute looked up in ``key_set``

    Returns:
        FileStat with the valid count and per-kind issue counters

    Raises:
        OSError, FormatError: file-level failures
    """
    stat = FileStat(file_name=path.name)
    decoded = 0

    def report(issue: RecordIssue) -> None:
        stat.record(issue)
        if issue.kind is IssueKind.KEY_NOT_FOUND:
            logger.warning(issue.describe())
        else:
            logger.error(issue.describe())

    with JsonRecordStream(path) as stream:
        logger.debug(f"{path.name}: {stream.mode.value if stream.mode else '?'} framing")
        for result in stream:
            if result.record is None:
                report(RecordIssue(path.name, result.ordinal, IssueKind.DECODE, result.error or ""))
                continue
            record = result.record
            decoded += 1
            if key_set is not None and decoded <= sample_size:
                stat.keys_checked += 1
                key = _key_text(getattr(record, key_field), key_field)
                if key not in key_set:
                    report(RecordIssue(
                        path.name,
                        result.ordinal,
                        IssueKind.KEY_NOT_FOUND,
                        f"{key_field} {key!r} not found in spreadsheet keys",
                    ))
            ok, reason = validate_record(record)
            if not ok:
                report(RecordIssue(path.name, result.ordinal, IssueKind.VALIDATION, reason))
                continue
            stat.valid += 1
    return stat


def aggregate_all(
    root: Path | str,
    key_set: set[str] | frozenset[str] | None = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    extensions: Iterable[str] = (".json",),
    key_field: str = "cfdi_id",
) -> AggregateResult:
    """Sum valid records over every JSON file under ``root``.

    Raises:
        AggregationError: walk failure, or the first file-level failure
            (message prefixed with the file name, cause chained)
    """
    paths = list(iter_json_files(root, extensions))
    logger.info(f"JSON files found: {len(paths)} under {root}")

    file_stats: list[FileStat] = []
    total = 0
    with ProgressTracker(len(paths)) as progress:
        for path in paths:
            progress.start_file(path)
            try:
                stat = aggregate_file(
                    path, key_set=key_set, sample_size=sample_size, key_field=key_field
                )
            except (OSError, FormatError) as e:
                raise AggregationError(f"{path.name}: {e}") from e
            file_stats.append(stat)
            total += stat.valid
            logger.info(f"{path.name}: {stat.valid} valid records")
            progress.finish_file(stat)
    return AggregateResult(total_valid=total, file_stats=file_stats)
