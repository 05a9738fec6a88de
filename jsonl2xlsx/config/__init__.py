"""Sheet configuration loading and validation."""
