"""Writing result sets out of the application."""

from __future__ import annotations

import csv
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from sqldeck.shared.core.errors import DataAccessError

logger = logging.getLogger(__name__)


def format_cell(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


class CsvExporter:
    """Writes rows as UTF-8 CSV with a header line."""

    def export(self, path: Path, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> int:
        """Write ``rows`` to ``path``.

        Returns:
            Number of data rows written.
        """
        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(columns)
                for row in rows:
                    writer.writerow(["" if value is None else format_cell(value) for value in row])
        except OSError as error:
            raise DataAccessError(f"could not write {path}: {error}") from error
        logger.info("Exported %d rows to %s", len(rows), path)
        return len(rows)


def row_to_tsv(row: Sequence[Any]) -> str:
    return "\t".join(format_cell(value) for value in row)


def copy_to_clipboard(text: str) -> None:
    """Copy text to the system clipboard.

    Raises:
        DataAccessError: No clipboard mechanism is available.
    """
    import pyperclip  # pyright: ignore[reportMissingModuleSource]

    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as error:
        raise DataAccessError(f"clipboard unavailable: {error}") from error
