"""Test class JsonFileStore."""
from pathlib import Path

from pocket_calculator.session.storage import THEME_KEY, JsonFileStore


def test_missing_file_is_empty(tmp_path: Path) -> None:
    """A store without a backing file starts empty."""
    store = JsonFileStore(path=tmp_path / "store.json")
    assert store.get(THEME_KEY) is None
    assert store.get(THEME_KEY, "light") == "light"


def test_set_persists(tmp_path: Path) -> None:
    """Values written by one store are read by another."""
    path = tmp_path / "nested" / "store.json"
    JsonFileStore(path=path).set(THEME_KEY, "dark")
    assert JsonFileStore(path=path).get(THEME_KEY) == "dark"


def test_update_sets_several_keys(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    JsonFileStore(path=path).update({"a": 1, "b": [1, 2]})
    assert JsonFileStore(path=path).load() == {"a": 1, "b": [1, 2]}


def test_corrupt_file_is_ignored(tmp_path: Path) -> None:
    """Unreadable JSON yields an empty store instead of failing."""
    path = tmp_path / "store.json"
    path.write_text("{not json")
    assert JsonFileStore(path=path).load() == {}


def test_non_object_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[1, 2, 3]")
    assert JsonFileStore(path=path).load() == {}
