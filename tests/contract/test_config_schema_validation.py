from __future__ import annotations

import json

import jsonschema
import pytest
from jsonschema.exceptions import ValidationError

from jsonl2xlsx.config.loader import SCHEMA_PATH

"""Config schema contract test: the packaged schema accepts documented configs."""


def _schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_file_is_valid_draft7():
    jsonschema.Draft7Validator.check_schema(_schema())


def test_config_schema_valid_example():
    config = {
        "outputfile": "out/report.xlsx",
        "sheetname": "Report",
        "freezerows": 2,
        "freezecolumns": 1,
        "headerheight": 30,
        "subheader": True,
        "subheaderheight": 60,
        "subheaderrotation": 90,
        "subheaderalignmenth": "Center",
        "subheaderalignmentv": "Bottom",
        "timezone": "Europe/Berlin",
        "columns": [
            {
                "name": "id",
                "caption": "ID",
                "type": "integer",
                "width": 8,
                "headerrotation": 255,
                "headeralignmenth": "Right",
                "headeralignmentv": "Center",
                "mergeh": 1,
                "mergev": 0,
                "fontcolor": "#FF0000",
            },
            {"name": "label"},
        ],
    }
    jsonschema.validate(config, _schema())


def test_nulls_are_accepted_for_optional_fields():
    jsonschema.validate({"outputfile": None, "freezerows": None, "columns": [{"name": "a", "width": None}]}, _schema())


def test_empty_column_list_is_valid():
    jsonschema.validate({"columns": []}, _schema())


@pytest.mark.parametrize("config", [
    {},
    {"columns": "a,b"},
    {"columns": [{"caption": "no name"}]},
    {"columns": [{"name": "a", "width": -1}]},
    {"columns": [{"name": "a", "mergeh": 1.5}]},
    {"columns": [{"name": "a", "headerrotation": 181}]},
    {"columns": [], "subheader": "true"},
    {"columns": [], "freezerows": -2},
])
def test_config_schema_invalid_examples(config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, _schema())
