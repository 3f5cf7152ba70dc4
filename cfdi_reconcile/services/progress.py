from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.results import FileStat

"""Progress display for the two long phases of a run.

- ``ProgressTracker``: one bar over the JSON files, with running valid /
  skipped totals as postfix.
- ``RowProgress``: open-ended row counter for spreadsheet scans, plus an INFO
  checkpoint line every N rows.

Bars are only drawn when stdout is a TTY (no ANSI control sequences in CI
logs or pipes). The INFO checkpoints are written either way.
"""

__all__ = [
    "ProgressTracker",
    "RowProgress",
    "is_tty_enabled",
]

logger = logging.getLogger(__name__)


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress bars should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """File bar for the JSON directory walk.

    Usage::

        with ProgressTracker(len(paths)) as progress:
            for path in paths:
                progress.start_file(path)
                stat = aggregate_file(path)
                progress.finish_file(stat)
    """

    def __init__(self, total_files: int, *, description: str = "Decoding JSON files") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.valid = 0
        self.skipped = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, stat: FileStat) -> None:
        """Advance one file and fold its counters into the running totals."""
        self.valid += stat.valid
        self.skipped += stat.skipped
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            self.pbar.set_postfix(valid=self.valid, skipped=self.skipped)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class RowProgress:
    """Row counter for streamed sheet scans.

    Logs ``<description>: <n> rows`` every ``every`` rows and, on a TTY, drives
    an open-ended tqdm counter.
    """

    def __init__(self, description: str, *, every: int = 100_000) -> None:
        if every < 1:
            raise ValueError("every must be >= 1")
        self.description = description
        self.every = every
        self.count = 0
        self.pbar: TqdmType[Any] | None = None
        if is_tty_enabled():
            self.pbar = tqdm(desc=description, unit="row", leave=False, ncols=80, ascii=True)

    def tick(self) -> None:
        self.count += 1
        if self.pbar is not None:
            self.pbar.update(1)
        if self.count % self.every == 0:
            logger.info(f"{self.description}: {self.count} rows")

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> RowProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
