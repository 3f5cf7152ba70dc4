from __future__ import annotations

import logging
import time
from pathlib import Path

from ..excel.reader import count_rows, extract_keys
from ..models.config_models import ReconcileSettings
from ..models.results import ReconcileResult
from .aggregator import aggregate_all, normalise_key

"""End-to-end reconciliation pass.

Strictly sequential: key extraction (only with the cross-check enabled), then
the spreadsheet row count, then the JSON directory walk. Errors from any stage
propagate unchanged; a count mismatch is reported through
``ReconcileResult.matched`` and left to the caller to act on.
"""

__all__ = [
    "reconcile",
]

logger = logging.getLogger(__name__)


def reconcile(
    excel_path: Path,
    sheet_name: str,
    json_dir: Path,
    settings: ReconcileSettings | None = None,
) -> ReconcileResult:
    settings = settings or ReconcileSettings()
    start = time.perf_counter()

    key_set: frozenset[str] | None = None
    if settings.cross_check.enabled:
        keys = extract_keys(
            excel_path,
            sheet_name,
            settings.key_header,
            progress_every=settings.progress_every,
        )
        key_set = frozenset(normalise_key(k, settings.key_field) for k in keys)

    excel_rows = count_rows(excel_path, sheet_name)
    logger.info(f"Excel rows: {excel_rows}")

    aggregate = aggregate_all(
        json_dir,
        key_set=key_set,
        sample_size=settings.cross_check.sample_size,
        extensions=settings.extensions,
        key_field=settings.key_field,
    )
    logger.info(f"JSON records: {aggregate.total_valid}")

    return ReconcileResult(
        excel_rows=excel_rows,
        json_records=aggregate.total_valid,
        files=aggregate.files,
        skipped_records=aggregate.skipped_records,
        key_count=len(key_set) if key_set is not None else 0,
        keys_missing=aggregate.keys_missing,
        elapsed_seconds=time.perf_counter() - start,
    )
