"""jsonl2xlsx: stream JSON Lines into a styled XLSX worksheet.

The first non-blank input line configures the sheet (layout and column
schema); every following line is one row.
"""

__version__ = "0.1.0"
