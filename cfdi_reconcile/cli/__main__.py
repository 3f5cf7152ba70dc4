from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from cfdi_reconcile.config.loader import ConfigError, load_config
from cfdi_reconcile.excel.reader import SpreadsheetError, preview_sheet
from cfdi_reconcile.logging.init import log_summary, set_debug, setup_logging
from cfdi_reconcile.models.config_models import ReconcileSettings
from cfdi_reconcile.services.aggregator import AggregationError
from cfdi_reconcile.services.reconcile import reconcile
from cfdi_reconcile.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Require -excel / -sheet / -jsondir (usage line + exit 1 otherwise)
- Load the optional YAML config
- Run the reconciliation pass and print the SUMMARY line
- Exit 0 when the totals match, 2 on mismatch, 1 on any fatal error
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_MISMATCH = 2

USAGE = "Usage: cfdi-reconcile -excel input.xlsx -sheet CFDIDETAILS2022 -jsondir ./jsons"


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="cfdi-reconcile",
        description="Check that a CFDI spreadsheet sheet and a JSON directory hold the same number of records",
    )
    p.add_argument("-excel", help="path to the .xlsx workbook")
    p.add_argument("-sheet", help="sheet name inside the workbook")
    p.add_argument("-jsondir", help="directory scanned recursively for .json files")
    p.add_argument("-config", help="optional YAML config (header labels, cross-check)")
    p.add_argument("-nocheck", action="store_true", help="skip the spreadsheet key cross-check")
    p.add_argument("-inspect", action="store_true", help="print the sheet header & first rows then exit")
    p.add_argument("-debug", action="store_true", help="enable debug logging")
    return p.parse_args(argv)


def _inspect_sheet(excel: Path, sheet: str, settings: ReconcileSettings) -> int:
    try:
        df = preview_sheet(excel, sheet)
    except SpreadsheetError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    columns = [str(c) for c in df.columns]
    print(f"SHEET: {sheet} cols={columns}")
    key_header = settings.key_header
    found = "yes" if key_header in columns else "NO"
    print(f"  key column '{key_header}' present: {found}")
    for record in df.to_dict(orient="records"):
        print(f"  row={record}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only an explicit None reads sys.argv; tests call main([]) under pytest
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if not (args.excel and args.sheet and args.jsondir):
        print(USAGE)
        return EXIT_FATAL

    if args.debug:
        set_debug()
        logger.debug("debug mode enabled")

    try:
        settings = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    if args.nocheck:
        settings = replace(settings, cross_check=replace(settings.cross_check, enabled=False))

    excel = Path(args.excel)
    json_dir = Path(args.jsondir)

    if args.inspect:
        return _inspect_sheet(excel, args.sheet, settings)

    try:
        result = reconcile(excel, args.sheet, json_dir, settings)
    except SpreadsheetError as e:
        logger.error(f"excel: {e}")
        return EXIT_FATAL
    except AggregationError as e:
        logger.error(f"json: {e}")
        return EXIT_FATAL

    if result.matched:
        logger.info("Excel rows and JSON records match.")
        code = EXIT_SUCCESS
    else:
        logger.error(f"Mismatch: Excel={result.excel_rows} vs JSON={result.json_records}")
        code = EXIT_MISMATCH
    log_summary(render_summary_line(result))
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
