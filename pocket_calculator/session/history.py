"""Calculation history: newest first, capped, exportable as JSON."""
import json
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from pocket_calculator.common.config import DEFAULT_SETTINGS
from pocket_calculator.common.errors import InvalidHistoryFile
from pocket_calculator.common.logger import logger
from pocket_calculator.common.models import HistoryEntry

HISTORY_ADAPTER = TypeAdapter(List[HistoryEntry])
EXPORT_FILE_NAME = "calculator-history.json"


class HistoryManager(BaseModel):
    """
    Ordered list of the most recent calculations.

    Entries are kept newest first and truncated to ``limit``.
    """

    limit: int = Field(default=DEFAULT_SETTINGS.history_limit, ge=1, description="Maximum number of entries")
    items: List[HistoryEntry] = Field(default_factory=list, description="Entries, newest first")

    def __len__(self) -> int:
        return len(self.items)

    @property
    def entries(self) -> List[HistoryEntry]:
        """Return a copy of the entries, newest first."""
        return list(self.items)

    def add(self, expression: str, result: float) -> HistoryEntry:
        """
        Record a calculation at the front of the history.

        :param str expression: Expression as typed
        :param float result: Evaluated result

        :return: The new entry
        :rtype: HistoryEntry
        """
        entry = HistoryEntry(expression=expression, result=result)
        self.items.insert(0, entry)
        del self.items[self.limit:]
        return entry

    def clear(self) -> None:
        self.items.clear()

    def replace(self, entries: List[HistoryEntry]) -> None:
        """Replace the history with ``entries``, keeping the first ``limit``."""
        self.items = list(entries[: self.limit])

    def to_json(self) -> str:
        return HISTORY_ADAPTER.dump_json(self.items, indent=2).decode()

    def load_json(self, document: str) -> None:
        """
        Replace the history with a JSON array of entries.

        Only arrays are accepted; the first ``limit`` elements are kept.

        :param str document: JSON text

        :raises InvalidHistoryFile: If the document is not valid JSON, not an
            array, or holds malformed entries
        """
        try:
            data = json.loads(document)
        except json.JSONDecodeError as exc:
            raise InvalidHistoryFile(f"Could not read history file: {exc}") from exc

        if not isinstance(data, list):
            raise InvalidHistoryFile("Invalid file format: expected a JSON array")

        try:
            entries = HISTORY_ADAPTER.validate_python(data[: self.limit])
        except ValidationError as exc:
            raise InvalidHistoryFile(f"Invalid history entry: {exc.error_count()} error(s)") from exc
        self.replace(entries)

    def export_json(self, path: Path) -> Path:
        """
        Write the history to ``path`` as an indented JSON array.

        A directory path receives the default ``calculator-history.json`` file.

        :param Path path: Target file or directory

        :return: Path written
        :rtype: Path
        """
        path = Path(path)
        if path.is_dir():
            path = path / EXPORT_FILE_NAME
        path.write_text(self.to_json(), encoding="utf-8")
        logger.info(f"📤 Exported {len(self)} history entries to {path}")
        return path

    def import_json(self, path: Path) -> int:
        """
        Replace the history with the entries stored in ``path``.

        :param Path path: JSON file previously written by ``export_json``

        :return: Number of entries imported
        :rtype: int
        :raises InvalidHistoryFile: If the file cannot be read or parsed
        """
        try:
            document = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidHistoryFile(f"Could not read history file: {exc}") from exc
        self.load_json(document)
        logger.info(f"📥 Imported {len(self)} history entries from {path}")
        return len(self)
