from __future__ import annotations

import json
import re
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError

from ..models.record import CfdiRecord

"""Streaming JSON / NDJSON record decoder.

A source is sniffed by its first significant character:
- ``[``  -> ARRAY mode, one JSON array of records
- ``{``  -> LINES mode, whitespace separated top-level objects (NDJSON)
- other  -> ``FormatError`` (file-level, fatal for that file)

Elements are framed by a bracket/quote aware scanner over a chunked buffer,
then parsed with ``json`` (``parse_float=Decimal``) and validated into
``CfdiRecord``. Only the current element and one read chunk are held in
memory. A malformed element produces a ``DecodeResult`` with ``error`` set and
the stream moves on to the next element. In LINES mode an object left open
is cut at the next line that starts with ``{``, so one unterminated line
costs only its own record.
"""

__all__ = [
    "CHUNK_SIZE",
    "DecodeResult",
    "FormatError",
    "FramingMode",
    "JsonRecordStream",
    "StreamState",
    "iter_records",
]

CHUNK_SIZE = 64 * 1024

_NON_WS = re.compile(r"[^ \t\n\r]")
# Outside strings only quotes and brackets matter for framing
_STRUCTURAL = re.compile(r'["{}\[\]]')
# NDJSON: a line opening with "{" starts the next top-level object
_STRUCTURAL_LINES = re.compile(r'\n\{|["{}\[\]]')
_IN_STRING = re.compile(r'["\\]')
_SCALAR_END = re.compile(r'[ \t\n\r,"{}\[\]]')


class FormatError(Exception):
    """Raised when a source is neither a JSON array nor an NDJSON stream."""


class FramingMode(Enum):
    ARRAY = "array"
    LINES = "lines"


class StreamState(Enum):
    """Per-file lifecycle: UNOPENED -> STREAMING -> CLOSED."""
    UNOPENED = "unopened"
    STREAMING = "streaming"
    CLOSED = "closed"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one element. Exactly one of record / error is set."""
    ordinal: int  # 1-based element position in the file
    record: CfdiRecord | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<record>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class _CharBuffer:
    """Forward-only character buffer over a text handle.

    With ``line_resync`` set, a ``{`` at the start of a line always begins a
    new element: an element still open at that point is cut there.
    """

    def __init__(self, fh: IO[str], chunk_size: int) -> None:
        self._fh = fh
        self._chunk_size = chunk_size
        self.buf = ""
        self.pos = 0
        self.eof = False
        self.line_resync = False

    def fill(self) -> bool:
        """Append one chunk. False once the handle is exhausted."""
        if self.eof:
            return False
        data = self._fh.read(self._chunk_size)
        if not data:
            self.eof = True
            return False
        self.buf += data
        return True

    def compact(self) -> None:
        # Only safe between elements: indexes held by a scan would shift
        if self.pos >= self._chunk_size:
            self.buf = self.buf[self.pos:]
            self.pos = 0

    def peek(self) -> str:
        """Skip whitespace and return the next character ("" at end of file)."""
        while True:
            m = _NON_WS.search(self.buf, self.pos)
            if m is not None:
                self.pos = m.start()
                return self.buf[self.pos]
            self.pos = len(self.buf)
            if not self.fill():
                return ""

    def take_value(self) -> tuple[str, str | None]:
        """Frame the value starting at ``pos`` and consume it.

        Returns the raw text and, for a value that never closed, the framing
        problem (None when the value is complete).
        """
        self.compact()
        start = self.pos
        end, problem = self._scan(start)
        self.pos = end
        return self.buf[start:end], problem

    def _scan(self, start: int) -> tuple[int, str | None]:
        if self.buf[start] not in '{["':
            # scalar: runs to the next delimiter, at least one character
            i = start + 1
            while True:
                m = _SCALAR_END.search(self.buf, i)
                if m is not None:
                    return m.start(), None
                i = len(self.buf)
                if not self.fill():
                    return len(self.buf), None

        structural = _STRUCTURAL_LINES if self.line_resync else _STRUCTURAL
        depth = 0
        in_string = False
        i = start
        while True:
            m = (_IN_STRING if in_string else structural).search(self.buf, i)
            if m is None:
                # rescan the last character: a trailing "\n" may pair with
                # a "{" from the next chunk
                i = max(i, len(self.buf) - 1)
                if not self.fill():
                    return len(self.buf), "unexpected end of file inside element"
                continue
            ch = m.group()
            i = m.end()
            if in_string:
                if ch == "\\":
                    if i >= len(self.buf) and not self.fill():
                        return len(self.buf), "unexpected end of file inside element"
                    i += 1
                    continue
                in_string = False
                if depth == 0:
                    return i, None
            elif ch == "\n{":
                return m.start() + 1, "element not closed before the next line starting with '{'"
            elif ch == '"':
                in_string = True
            elif ch in "{[":
                depth += 1
            else:
                depth -= 1
                if depth == 0:
                    return i, None


class JsonRecordStream:
    """Lazy, forward-only sequence of ``DecodeResult`` for one JSON file.

    Use as a context manager; the file handle is released on every exit path::

        with JsonRecordStream(path) as stream:
            for result in stream:
                ...
    """

    def __init__(self, path: Path | str, *, chunk_size: int = CHUNK_SIZE) -> None:
        self.path = Path(path)
        self.name = self.path.name
        self.mode: FramingMode | None = None
        self.state = StreamState.UNOPENED
        self._chunk_size = chunk_size
        self._fh: IO[str] | None = None
        self._buf: _CharBuffer | None = None
        self._decoder = json.JSONDecoder(parse_float=Decimal, parse_constant=_reject_constant)

    def __enter__(self) -> JsonRecordStream:
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def open(self) -> FramingMode:
        """Open the file and detect its framing mode.

        Raises:
            OSError: file cannot be opened or read
            FormatError: empty file, or first character is neither ``[`` nor ``{``
        """
        if self.state is not StreamState.UNOPENED:
            raise RuntimeError(f"{self.name}: stream already {self.state.value}")
        # utf-8-sig: tolerate a leading BOM written by spreadsheet exports;
        # invalid bytes become U+FFFD inside the affected element only
        self._fh = self.path.open("r", encoding="utf-8-sig", errors="replace", newline="")
        self._buf = _CharBuffer(self._fh, self._chunk_size)
        try:
            self.mode = self._sniff()
        except BaseException:
            self.close()
            raise
        self.state = StreamState.STREAMING
        return self.mode

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        self.state = StreamState.CLOSED

    def _sniff(self) -> FramingMode:
        assert self._buf is not None
        first = self._buf.peek()
        if first == "":
            raise FormatError("empty file")
        if first == "[":
            self._buf.pos += 1
            return FramingMode.ARRAY
        if first == "{":
            self._buf.line_resync = True
            return FramingMode.LINES
        raise FormatError(
            f"looks like neither a JSON array nor NDJSON (starts with {first!r})"
        )

    def __iter__(self) -> Iterator[DecodeResult]:
        if self.state is not StreamState.STREAMING:
            raise RuntimeError(f"{self.name}: stream is {self.state.value}, not streaming")
        if self.mode is FramingMode.ARRAY:
            return self._iter_array()
        return self._iter_lines()

    def _iter_array(self) -> Iterator[DecodeResult]:
        buf = self._buf
        assert buf is not None
        ordinal = 0
        expect_separator = False
        while True:
            ch = buf.peek()
            if ch == "":
                raise FormatError("end of file before closing ']'")
            if ch == "]":
                buf.pos += 1
                break
            if expect_separator:
                if ch == ",":
                    buf.pos += 1
                    expect_separator = False
                    continue
                # missing separator: report the stray element and keep going
                ordinal += 1
                buf.take_value()
                yield DecodeResult(ordinal, error="expected ',' or ']' before element")
                continue
            ordinal += 1
            yield self._decode(ordinal, *buf.take_value())
            expect_separator = True
        self.close()

    def _iter_lines(self) -> Iterator[DecodeResult]:
        buf = self._buf
        assert buf is not None
        ordinal = 0
        while buf.peek() != "":
            ordinal += 1
            yield self._decode(ordinal, *buf.take_value())
        self.close()

    def _decode(self, ordinal: int, text: str, problem: str | None) -> DecodeResult:
        if problem is not None:
            return DecodeResult(ordinal, error=problem)
        try:
            obj, end = self._decoder.raw_decode(text)
        except ValueError as e:
            return DecodeResult(ordinal, error=f"invalid JSON: {e}")
        if end != len(text):
            return DecodeResult(ordinal, error=f"invalid JSON: extra data at column {end + 1}")
        try:
            record = CfdiRecord.model_validate(obj)
        except ValidationError as e:
            return DecodeResult(ordinal, error=_describe_validation_error(e))
        return DecodeResult(ordinal, record=record)


def iter_records(path: Path | str, *, chunk_size: int = CHUNK_SIZE) -> Iterator[DecodeResult]:
    """Open, sniff and stream ``path``; the file is closed when the generator ends."""
    with JsonRecordStream(path, chunk_size=chunk_size) as stream:
        yield from stream
