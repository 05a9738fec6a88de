from __future__ import annotations

import io
import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pandas as pd  # type: ignore
import pytest

from jsonl2xlsx.cli.main import main as cli_main
from tests.helpers import jsonl, read_workbook

"""End-to-end runs of the CLI against in-memory stdin/stdout.

Documents are read back with openpyxl (styles, merges) and pandas (values).
"""


def _run(*records, argv=None) -> bytes:
    out = io.BytesIO()
    code = cli_main(["--no-progress", *(argv or [])], stdin=jsonl(*records, ""), stdout=out)
    assert code == 0
    return out.getvalue()


def test_single_integer_column(temp_workdir: Path):
    data = _run({"Columns": [{"Name": "a", "Type": "integer"}]}, {"a": 5})
    ws = read_workbook(data).active
    assert ws["A1"].value == "a"
    assert ws["A2"].value == 5
    assert ws["A2"].data_type == "n"
    assert ws["A2"].number_format == "#,##0"


def test_sub_header_row_is_text(temp_workdir: Path):
    config = {
        "SubHeader": True,
        "Columns": [
            {"Name": "n", "Caption": "Number", "Type": "integer"},
            {"Name": "p", "Caption": "Share", "Type": "percent"},
            {"Name": "ok", "Type": "boolean"},
        ],
    }
    data = _run(config, {"n": 1, "p": 0.5, "ok": False}, {"n": 2, "p": 0.25, "ok": True})
    ws = read_workbook(data).active
    assert [ws.cell(row=2, column=c).value for c in (1, 2, 3)] == ["1", "0.5", "False"]
    assert all(ws.cell(row=2, column=c).data_type == "s" for c in (1, 2, 3))
    assert ws["A3"].value == 2
    assert ws["B3"].value == pytest.approx(0.25)
    assert ws["B3"].number_format == "0%"
    assert ws["C3"].value is True


@pytest.mark.parametrize("stdin", [[], [""], ["", '{"Columns": [{"Name": "late"}]}']])
def test_no_input_produces_fallback_document(temp_workdir: Path, stdin, capsys):
    out = io.BytesIO()
    assert cli_main(["--no-progress"], stdin=stdin, stdout=out) == 0
    wb = read_workbook(out.getvalue())
    assert wb.sheetnames == ["Sheet1"]
    assert wb.active["A1"].value == "Column1"
    assert wb.active.max_row == 1
    assert "WARN no valid config line received" in capsys.readouterr().err


def test_horizontal_merge_header(temp_workdir: Path):
    config = {"Columns": [
        {"Name": "a", "Caption": "Group", "MergeH": 2},
        {"Name": "b"},
        {"Name": "c"},
        {"Name": "d", "Caption": "D"},
    ]}
    data = _run(config, {"a": "x", "b": "y", "c": "z", "d": "w"})
    ws = read_workbook(data).active
    assert [str(r) for r in ws.merged_cells.ranges] == ["A1:C1"]
    assert ws["A1"].value == "Group"
    assert ws["D1"].value == "D"
    assert [ws.cell(row=2, column=c).value for c in range(1, 5)] == ["x", "y", "z", "w"]


def test_output_file_path_is_only_stdout_line(temp_workdir: Path, capsys):
    config = {"OutputFile": "out/report.xlsx", "Columns": [{"Name": "a"}]}
    code = cli_main(["--no-progress"], stdin=jsonl(config, {"a": "x"}))
    out = capsys.readouterr().out
    expected = (temp_workdir / "out" / "report.xlsx").resolve()
    assert code == 0
    assert out.splitlines() == [str(expected)]
    assert read_workbook(expected.read_bytes()).active["A2"].value == "x"


def test_values_read_back_with_pandas(temp_workdir: Path, sample_config):
    rows = [
        {"id": 1, "name": "Alice", "share": 0.5, "amount": 10.25, "active": True},
        {"id": 2, "name": "Bob", "share": 0.125, "amount": "3", "active": "false"},
        {"id": "x", "name": None, "share": 1, "amount": 7, "active": 1},
    ]
    data = _run(sample_config, *rows)
    df = pd.read_excel(io.BytesIO(data), sheet_name="Report")
    assert list(df.columns) == ["ID", "Name", "Share", "Amount", "Active"]
    assert len(df) == 3
    assert df["Name"].tolist()[:2] == ["Alice", "Bob"]
    assert pd.isna(df["Name"].iloc[2])
    assert pd.isna(df["ID"].iloc[2])
    assert df["ID"].iloc[0] == 1
    assert df["Share"].tolist() == pytest.approx([0.5, 0.125, 1.0])
    assert df["Amount"].tolist() == pytest.approx([10.25, 3.0, 7.0])
    assert df["Active"].tolist() == [True, False, True]


def test_layout_is_applied(temp_workdir: Path, sample_config):
    config = {**sample_config, "FreezeColumns": 1, "HeaderHeight": 24}
    ws = read_workbook(_run(config, {"id": 1}))["Report"]
    assert ws.freeze_panes == "B2"
    assert ws.row_dimensions[1].height == 24
    assert ws.column_dimensions["D"].width == 14
    assert ws.column_dimensions["C"].width == 7
    assert ws["A1"].font.b is True


def test_dates_with_timezone(temp_workdir: Path):
    config = {
        "Timezone": "Europe/Berlin",
        "Columns": [
            {"Name": "local", "Type": "datetime"},
            {"Name": "utc", "Type": "datetime+utc"},
            {"Name": "day", "Type": "date"},
        ],
    }
    # 2024-01-15 12:00:00 UTC
    millis = 1705320000000
    ws = read_workbook(_run(config, {"local": millis, "utc": millis, "day": millis})).active
    assert ws["A2"].value == datetime(2024, 1, 15, 13, 0)
    assert ws["B2"].value == datetime(2024, 1, 15, 12, 0)
    assert ws["A2"].number_format == "dd.mm.yyyy hh:mm:ss"
    assert ws["C2"].number_format == "dd.mm.yyyy"


def test_env_timezone_is_default(temp_workdir: Path, monkeypatch):
    monkeypatch.setenv("JSONL2XLSX_TIMEZONE", "UTC")
    config = {"Columns": [{"Name": "t", "Type": "datetime"}]}
    ws = read_workbook(_run(config, {"t": 0})).active
    assert ws["A2"].value == datetime(1970, 1, 1)


def test_dotenv_file_is_loaded(temp_workdir: Path, monkeypatch):
    # registers the variable with monkeypatch so the value loaded from .env is undone
    monkeypatch.setenv("JSONL2XLSX_TIMEZONE", "UTC")
    monkeypatch.delenv("JSONL2XLSX_TIMEZONE")
    (temp_workdir / ".env").write_text("JSONL2XLSX_TIMEZONE=Asia/Tokyo\n", encoding="utf-8")
    config = {"Columns": [{"Name": "t", "Type": "datetime"}]}
    ws = read_workbook(_run(config, {"t": 0})).active
    assert ws["A2"].value == datetime(1970, 1, 1, 9, 0)


def test_config_file_option_treats_first_line_as_row(temp_workdir: Path):
    (temp_workdir / "sheet.yml").write_text(
        "SheetName: FromFile\n"
        "Columns:\n"
        "  - Name: a\n"
        "    Type: decimal\n",
        encoding="utf-8",
    )
    ws = read_workbook(_run({"a": 1.5}, {"a": 2}, argv=["--config", "sheet.yml"]))["FromFile"]
    assert ws["A1"].value == "a"
    assert ws["A2"].value == pytest.approx(1.5)
    assert ws["A3"].value == 2


def test_error_log_option(temp_workdir: Path):
    config = {"Columns": [{"Name": "a"}]}
    _run("garbage", config, {"a": 1}, "[1]", "{", argv=["--error-log", "logs/errors.jsonl"])
    records = [
        json.loads(line)
        for line in (temp_workdir / "logs" / "errors.jsonl").read_text(encoding="utf-8").splitlines()
    ]
    assert [(r["line"], r["error_type"]) for r in records] == [
        (1, "CONFIG_DECODE_ERROR"),
        (4, "ROW_NOT_OBJECT"),
        (5, "ROW_DECODE_ERROR"),
    ]


def test_rejected_rows_keep_rows_contiguous(temp_workdir: Path, capsys):
    config = {"Columns": [{"Name": "a", "Type": "integer"}]}
    ws = read_workbook(_run(config, {"a": 1}, "oops", {"a": 2}, "null", {"a": 3})).active
    assert [ws.cell(row=r, column=1).value for r in range(2, 5)] == [1, 2, 3]
    assert ws.max_row == 4
    assert "SUMMARY rows=3 rejected=2" in capsys.readouterr().err


def test_decimal_precision_is_kept(temp_workdir: Path):
    config = {"Columns": [{"Name": "a", "Type": "decimal"}]}
    ws = read_workbook(_run(config, {"a": "1234.5678"})).active
    assert Decimal(str(ws["A2"].value)) == Decimal("1234.5678")


def test_invalid_utf8_on_stdin_does_not_stop_the_run(temp_workdir: Path, monkeypatch):
    raw = (
        b'{"Columns": [{"Name": "a"}]}\n'
        b'{"a": "first"}\n'
        b'{"a": "\xff"}\n'
        b'{"a": "ok"}\n'
        b'\n'
    )
    # the CLI switches stdin to UTF-8 itself
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(raw), encoding="latin-1"))
    out = io.BytesIO()
    assert cli_main(["--no-progress"], stdout=out) == 0
    ws = read_workbook(out.getvalue()).active
    assert [ws.cell(row=r, column=1).value for r in range(2, 5)] == ["first", "\ufffd", "ok"]
    assert ws.max_row == 4
