"""Diagnostics: labeled stderr logging and the JSON Lines error log."""
