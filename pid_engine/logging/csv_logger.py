"""
Per-tick CSV trace logging.

Rows are buffered and written in blocks so that logging does not dominate a
simulation tick. The engine and the harness run on a single tick driver, so
the logger is not shared between threads and takes no lock.
"""

from typing import Any, List, Mapping, Optional
from pathlib import Path
import csv


class CSVLogger:
    """
    Buffered CSV writer with a fixed column set.

    Missing fields are written empty, unknown fields are ignored, and
    floats are written with ``float_format``.

    Example:
        >>> trace = CSVLogger("trace.csv", columns=["tick", "error", "output"])
        >>> trace.log({"tick": 0, "error": 10.0, "output": 0.0})
        >>> trace.close()
    """

    def __init__(
        self,
        file_path: str,
        columns: List[str],
        buffer_size: int = 256,
        append: bool = False,
        float_format: Optional[str] = "{:.10g}"
    ):
        """
        Open the file and write the header.

        Args:
            file_path: Destination CSV path (parent directories are created)
            columns: Column names, in order
            buffer_size: Rows held in memory before a write
            append: Append to an existing trace instead of truncating it
            float_format: Format applied to float cells (None writes repr)
        """
        if not columns:
            raise ValueError("columns cannot be empty")
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")

        self._path = Path(file_path)
        self._columns = list(columns)
        self._buffer_size = buffer_size
        self._float_format = float_format
        self._pending: List[List[Any]] = []
        self._rows_logged = 0

        self._path.parent.mkdir(parents=True, exist_ok=True)
        has_content = append and self._path.exists() and self._path.stat().st_size > 0
        self._file = open(self._path, 'a' if append else 'w', newline='')
        self._writer = csv.writer(self._file)
        if not has_content:
            self._writer.writerow(self._columns)
            self._file.flush()
        self._closed = False

    def _cell(self, value: Any) -> Any:
        if value is None:
            return ''
        if isinstance(value, float) and self._float_format is not None:
            return self._float_format.format(value)
        return value

    def log(self, row: Mapping[str, Any]) -> None:
        """
        Queue one row.

        Raises:
            RuntimeError: If the logger has been closed
        """
        if self._closed:
            raise RuntimeError(f"Trace {self._path} is closed")
        self._pending.append([self._cell(row.get(col)) for col in self._columns])
        self._rows_logged += 1
        if len(self._pending) >= self._buffer_size:
            self.flush()

    def flush(self) -> None:
        """Write queued rows."""
        if self._closed or not self._pending:
            return
        self._writer.writerows(self._pending)
        self._file.flush()
        self._pending.clear()

    def close(self) -> None:
        """Write queued rows and close the file. Safe to call twice."""
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._file.close()
            self._closed = True

    @property
    def file_path(self) -> Path:
        return self._path

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    @property
    def rows_logged(self) -> int:
        """Rows accepted so far, written or still queued."""
        return self._rows_logged

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
