"""Worksheet construction: value coercion, layout and row writing."""
