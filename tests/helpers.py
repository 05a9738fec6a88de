from __future__ import annotations

import io
import json

from openpyxl import load_workbook


def jsonl(*records: object) -> list[str]:
    """Input lines for the CLI / driver: dicts are JSON-encoded, strings kept."""
    return [r if isinstance(r, str) else json.dumps(r) for r in records]


def read_workbook(data: bytes):
    return load_workbook(io.BytesIO(data))
