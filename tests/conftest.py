# Shared pytest fixtures
from __future__ import annotations

import json
from pathlib import Path

import pytest

from jsonl2xlsx.logging.init import reset_logging


@pytest.fixture(autouse=True)
def clean_logging():
    # the package logger binds sys.stderr at setup time; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("JSONL2XLSX_TIMEZONE", raising=False)
    monkeypatch.delenv("JSONL2XLSX_DEBUG", raising=False)
    return tmp_path


@pytest.fixture()
def sample_config() -> dict:
    return {
        "SheetName": "Report",
        "FreezeRows": 1,
        "Columns": [
            {"Name": "id", "Caption": "ID", "Type": "integer"},
            {"Name": "name", "Caption": "Name"},
            {"Name": "share", "Caption": "Share", "Type": "percent"},
            {"Name": "amount", "Caption": "Amount", "Type": "decimal", "Width": 14},
            {"Name": "active", "Caption": "Active", "Type": "boolean"},
        ],
    }


@pytest.fixture()
def config_line(sample_config: dict) -> str:
    return json.dumps(sample_config)
