from __future__ import annotations

from ..models.results import ReconcileResult

"""SUMMARY line rendering.

Format:
SUMMARY excel_rows={n} json_records={m} files={f} skipped={s} keys={k}
keys_missing={x} elapsed_sec={t}
(single line; the SUMMARY label itself is added by the logging formatter)
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}"


def render_summary_line(result: ReconcileResult) -> str:
    """Render the summary content for ``log_summary``.

    Examples:
        >>> r = ReconcileResult(excel_rows=3, json_records=3, files=1, skipped_records=1,
        ...                     key_count=3, keys_missing=0, elapsed_seconds=2.0)
        >>> render_summary_line(r)
        'excel_rows=3 json_records=3 files=1 skipped=1 keys=3 keys_missing=0 elapsed_sec=2'
    """
    return (
        f"excel_rows={result.excel_rows} "
        f"json_records={result.json_records} "
        f"files={result.files} "
        f"skipped={result.skipped_records} "
        f"keys={result.key_count} "
        f"keys_missing={result.keys_missing} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
