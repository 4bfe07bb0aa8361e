"""Key-value persistence for calculator preferences, memory and history."""
import json
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, Field, PrivateAttr

from pocket_calculator.common.logger import logger

THEME_KEY = "calculator-theme"
HISTORY_KEY = "calculator-history"
MEMORY_KEY = "calculator-memory"
SCIENTIFIC_MODE_KEY = "calculator-scientific-mode"


class JsonFileStore(BaseModel):
    """
    Key-value store saved as a single JSON object on disk.

    Every ``set`` writes the whole file. A missing or corrupt file is treated
    as an empty store.
    """

    path: Path = Field(..., description="JSON file backing the store")

    _data: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self.load()

    def load(self) -> Dict[str, Any]:
        """
        (Re)read the backing file.

        :return: Stored key-value pairs
        :rtype: Dict[str, Any]
        """
        self._data = {}
        if not self.path.exists():
            return dict(self._data)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"💾❌ Ignoring unreadable store {self.path}: {exc}")
            return dict(self._data)
        if isinstance(data, dict):
            self._data = data
        else:
            logger.warning(f"💾❌ Ignoring store {self.path}: expected a JSON object")
        return dict(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def update(self, values: Dict[str, Any]) -> None:
        """Set several keys with a single write."""
        self._data.update(values)
        self.save()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
