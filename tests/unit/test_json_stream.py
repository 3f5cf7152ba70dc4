from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from cfdi_reconcile.jsonio.stream import (
    FormatError,
    FramingMode,
    JsonRecordStream,
    StreamState,
    iter_records,
)

UUID_A = "6f1c2d3e-4a5b-4c6d-8e7f-0a1b2c3d4e5f"
UUID_B = "7a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d"


def _rec(cfdi_id: str, uuid: str = UUID_A, **extra) -> dict:
    return {"cfdiId": cfdi_id, "uuid": uuid, **extra}


def _decode_all(path: Path, **kw) -> list:
    return list(iter_records(path, **kw))


def test_array_mode_detected_and_decoded(tmp_path: Path):
    p = tmp_path / "a.json"
    p.write_text(json.dumps([_rec("A1"), _rec("A2", UUID_B)]), encoding="utf-8")
    with JsonRecordStream(p) as stream:
        assert stream.mode is FramingMode.ARRAY
        results = list(stream)
    assert [r.ordinal for r in results] == [1, 2]
    assert all(r.ok for r in results)
    assert [r.record.cfdi_id for r in results] == ["A1", "A2"]


def test_lines_mode_detected_and_decoded(tmp_path: Path):
    p = tmp_path / "l.json"
    p.write_text("\n".join(json.dumps(_rec(f"A{i}")) for i in range(3)) + "\n", encoding="utf-8")
    with JsonRecordStream(p) as stream:
        assert stream.mode is FramingMode.LINES
        results = list(stream)
    assert [r.record.cfdi_id for r in results] == ["A0", "A1", "A2"]


def test_lines_mode_accepts_any_whitespace_separation(tmp_path: Path):
    p = tmp_path / "l.json"
    p.write_text('{"cfdiId": "A1"}   {"cfdiId": "A2"}\n\n\t{"cfdiId":\n "A3"}', encoding="utf-8")
    assert [r.record.cfdi_id for r in _decode_all(p)] == ["A1", "A2", "A3"]


def test_mode_independence(tmp_path: Path):
    items = [_rec("A1"), _rec("A2"), {"cfdiId": "A3", "bogus": 1}, _rec("")]
    arr = tmp_path / "arr.json"
    arr.write_text(json.dumps(items), encoding="utf-8")
    nd = tmp_path / "nd.json"
    nd.write_text("\n".join(json.dumps(i) for i in items), encoding="utf-8")
    ok_arr = [r.record.cfdi_id for r in _decode_all(arr) if r.ok]
    ok_nd = [r.record.cfdi_id for r in _decode_all(nd) if r.ok]
    assert ok_arr == ok_nd == ["A1", "A2", ""]


def test_leading_whitespace_and_bom(tmp_path: Path):
    p = tmp_path / "bom.json"
    p.write_bytes(b"\xef\xbb\xbf \n\t " + json.dumps([_rec("A1")]).encode("utf-8"))
    with JsonRecordStream(p) as stream:
        assert stream.mode is FramingMode.ARRAY
        assert [r.record.cfdi_id for r in stream] == ["A1"]


@pytest.mark.parametrize("content", ['"just a string"', "  42", "null", "x{}", "\n\n<xml/>"])
def test_format_error_for_other_leading_char(tmp_path: Path, content: str):
    p = tmp_path / "bad.json"
    p.write_text(content, encoding="utf-8")
    with pytest.raises(FormatError):
        JsonRecordStream(p).open()


def test_format_error_for_empty_file(tmp_path: Path):
    p = tmp_path / "empty.json"
    p.write_text("  \n ", encoding="utf-8")
    with pytest.raises(FormatError, match="empty"):
        _decode_all(p)


def test_open_missing_file_raises_oserror(tmp_path: Path):
    with pytest.raises(OSError):
        JsonRecordStream(tmp_path / "nope.json").open()


def test_empty_array(tmp_path: Path):
    p = tmp_path / "e.json"
    p.write_text("[ ]", encoding="utf-8")
    assert _decode_all(p) == []


def test_malformed_element_skipped_in_array(tmp_path: Path):
    p = tmp_path / "m.json"
    p.write_text(
        '[{"cfdiId": "A1"}, {"cfdiId": "A2",, "x"}, {"cfdiId": "A3"}]',
        encoding="utf-8",
    )
    results = _decode_all(p)
    assert [r.ordinal for r in results] == [1, 2, 3]
    assert results[0].ok and results[2].ok
    assert not results[1].ok
    assert "invalid JSON" in results[1].error
    assert results[2].record.cfdi_id == "A3"


def test_unknown_field_fails_only_that_element(tmp_path: Path):
    p = tmp_path / "u.json"
    p.write_text(json.dumps([_rec("A1"), _rec("A2", extra_field=True), _rec("A3")]), encoding="utf-8")
    results = _decode_all(p)
    assert [r.ok for r in results] == [True, False, True]
    assert "extra_field" in results[1].error


def test_malformed_line_skipped_in_lines_mode(tmp_path: Path):
    p = tmp_path / "m.json"
    p.write_text('{"cfdiId": "A1"}\n{"cfdiId": }\n{"cfdiId": "A3"}\n', encoding="utf-8")
    results = _decode_all(p)
    assert [r.ok for r in results] == [True, False, True]
    assert results[1].ordinal == 2


def test_non_object_elements_are_decode_failures(tmp_path: Path):
    p = tmp_path / "n.json"
    p.write_text('[1, "two", [3], null, {"cfdiId": "A1"}]', encoding="utf-8")
    results = _decode_all(p)
    assert [r.ok for r in results] == [False, False, False, False, True]


def test_nan_constant_rejected(tmp_path: Path):
    p = tmp_path / "nan.json"
    p.write_text('[{"total": NaN}, {"total": 1.5}]', encoding="utf-8")
    results = _decode_all(p)
    assert not results[0].ok
    assert results[1].record.total == Decimal("1.5")


def test_missing_comma_reports_next_element(tmp_path: Path):
    p = tmp_path / "c.json"
    p.write_text('[{"cfdiId": "A1"} {"cfdiId": "A2"}, {"cfdiId": "A3"}]', encoding="utf-8")
    results = _decode_all(p)
    assert [r.ok for r in results] == [True, False, True]
    assert "expected ','" in results[1].error


def test_unterminated_array_is_format_error(tmp_path: Path):
    p = tmp_path / "t.json"
    p.write_text('[{"cfdiId": "A1"}, {"cfdiId": "A2"}', encoding="utf-8")
    seen = []
    with pytest.raises(FormatError, match="closing"):
        for r in iter_records(p):
            seen.append(r)
    assert len(seen) == 2


def test_truncated_last_line_is_record_error(tmp_path: Path):
    p = tmp_path / "t.json"
    p.write_text('{"cfdiId": "A1"}\n{"cfdiId": "A2", "status": "Vig', encoding="utf-8")
    results = _decode_all(p)
    assert [r.ok for r in results] == [True, False]
    assert "end of file" in results[1].error


def test_trailing_content_after_array_ignored(tmp_path: Path):
    p = tmp_path / "tr.json"
    p.write_text('[{"cfdiId": "A1"}]\n\ngarbage', encoding="utf-8")
    assert len(_decode_all(p)) == 1


def test_decimal_precision_through_stream(tmp_path: Path):
    p = tmp_path / "d.json"
    p.write_text('[{"total": 1234.565, "subTotal": "1234.565", "iva": 0.1}]', encoding="utf-8")
    (r,) = _decode_all(p)
    assert r.record.total == Decimal("1234.565")
    assert r.record.sub_total == Decimal("1234.565")
    assert r.record.iva == Decimal("0.1")


@pytest.mark.parametrize("chunk_size", [1, 3, 7, 64])
def test_small_chunks_with_tricky_strings(tmp_path: Path, chunk_size: int):
    # brackets, braces and escaped quotes inside strings must not confuse framing
    items = [
        _rec("A1", concepts='Servicio [mensual] {premium}'),
        _rec("A2", reference='he said \\"hi\\" \\\\ ]'),
        _rec("A3", emitterCompanyName="Año ñandú é"),
    ]
    text = "[" + ",\n".join(json.dumps(i, ensure_ascii=False) for i in items) + "]"
    p = tmp_path / "s.json"
    p.write_text(text, encoding="utf-8")
    results = _decode_all(p, chunk_size=chunk_size)
    assert [r.ok for r in results] == [True, True, True]
    assert results[0].record.concepts == "Servicio [mensual] {premium}"
    assert results[2].record.emitter_company_name == "Año ñandú é"


def test_stream_closed_after_iteration(tmp_path: Path):
    p = tmp_path / "a.json"
    p.write_text(json.dumps([_rec("A1")]), encoding="utf-8")
    stream = JsonRecordStream(p)
    assert stream.state is StreamState.UNOPENED
    with stream:
        assert stream.state is StreamState.STREAMING
        list(stream)
    assert stream.state is StreamState.CLOSED


def test_stream_closed_on_early_exit(tmp_path: Path):
    p = tmp_path / "a.json"
    p.write_text(json.dumps([_rec("A1"), _rec("A2")]), encoding="utf-8")
    with JsonRecordStream(p) as stream:
        next(iter(stream))
    assert stream.state is StreamState.CLOSED


def test_iterating_unopened_stream_raises(tmp_path: Path):
    p = tmp_path / "a.json"
    p.write_text("[]", encoding="utf-8")
    with pytest.raises(RuntimeError):
        iter(JsonRecordStream(p))


def test_invalid_utf8_replaced_inside_element(tmp_path: Path):
    p = tmp_path / "bin.json"
    p.write_bytes(b'[{"cfdiId": "A\xff\xfe"}, {"cfdiId": "A2"}]')
    results = _decode_all(p)
    assert [r.ok for r in results] == [True, True]
    assert results[0].record.cfdi_id == "A\ufffd\ufffd"
    assert results[1].record.cfdi_id == "A2"


@pytest.mark.parametrize("chunk_size", [1, 2, 5, 64 * 1024])
def test_unclosed_line_does_not_swallow_following_lines(tmp_path: Path, chunk_size: int):
    p = tmp_path / "u.json"
    lines = [
        json.dumps(_rec("A1")),
        '{"cfdiId": "A2", "uuid": "' + UUID_B + '"',
        json.dumps(_rec("A3")),
        json.dumps(_rec("A4")),
    ]
    p.write_text("\n".join(lines) + "\n", encoding="utf-8")
    results = _decode_all(p, chunk_size=chunk_size)
    assert [r.ordinal for r in results] == [1, 2, 3, 4]
    assert [r.ok for r in results] == [True, False, True, True]
    assert "next line" in results[1].error
    assert [r.record.cfdi_id for r in results if r.ok] == ["A1", "A3", "A4"]


def test_unclosed_line_before_crlf_line_break(tmp_path: Path):
    p = tmp_path / "crlf.json"
    p.write_bytes(b'{"cfdiId": "A1", "status": {\r\n{"cfdiId": "A2"}\r\n')
    results = _decode_all(p)
    assert [r.ok for r in results] == [False, True]
    assert results[1].record.cfdi_id == "A2"


def test_pretty_printed_objects_in_lines_mode(tmp_path: Path):
    p = tmp_path / "pretty.json"
    p.write_text(
        "\n".join(json.dumps(_rec(f"A{i}"), indent=2) for i in range(3)) + "\n",
        encoding="utf-8",
    )
    results = _decode_all(p, chunk_size=4)
    assert [r.ok for r in results] == [True, True, True]
