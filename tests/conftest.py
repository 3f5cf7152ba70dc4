# Shared pytest fixtures
from __future__ import annotations
import json
import tempfile
import uuid as uuid_mod
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import pytest

from cfdi_reconcile.logging.init import reset_logging, setup_logging


@pytest.fixture(autouse=True)
def fresh_logging():
    reset_logging()
    setup_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "jsons").mkdir()
        monkeypatch.chdir(p)
        yield p


def make_payload(cfdi_id: str = "A1", uuid: str | None = None, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "cfdiId": cfdi_id,
        "uuid": uuid if uuid is not None else str(uuid_mod.uuid4()),
        "status": "Vigente",
        "type": "I",
        "currency": "MXN",
        "subTotal": "100.00",
        "total": "116.00",
        "isValid": True,
    }
    payload.update(extra)
    return payload


@pytest.fixture()
def payload() -> Callable[..., dict[str, Any]]:
    return make_payload


@pytest.fixture()
def write_excel() -> Callable[[Path, dict[str, list[list[object]]]], Path]:
    def _write(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return path
    return _write


@pytest.fixture()
def write_json_array() -> Callable[[Path, list[Any]], Path]:
    def _write(path: Path, items: list[Any]) -> Path:
        path.write_text(json.dumps(items, indent=2), encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def write_ndjson() -> Callable[[Path, list[Any]], Path]:
    def _write(path: Path, items: list[Any]) -> Path:
        path.write_text("\n".join(json.dumps(i) for i in items) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def sample_config_yaml() -> str:
    return """key_field: cfdi_id
header_labels:
  cfdi_id: "ID"
cross_check:
  enabled: true
  sample_size: 5
progress_every: 1000
extensions: [".json"]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "reconcile.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
