"""Run orchestration: stream driver, output sink, progress and summary."""
