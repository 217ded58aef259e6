"""Buffered trace logging for engine and harness data."""

from pid_engine.logging.csv_logger import CSVLogger

__all__ = [
    "CSVLogger",
]
