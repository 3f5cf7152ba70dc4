"""JSON / NDJSON record decoding."""

from .stream import DecodeResult, FormatError, FramingMode, JsonRecordStream, StreamState, iter_records

__all__ = [
    "DecodeResult",
    "FormatError",
    "FramingMode",
    "JsonRecordStream",
    "StreamState",
    "iter_records",
]
