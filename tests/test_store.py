import json
from pathlib import Path

import pytest

from htmlpdf_converter.errors import InputError
from htmlpdf_converter.models import ConversionSettings, Orientation, PageSize
from htmlpdf_converter.store import SettingsStore


def test_absent_settings_yield_defaults(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    assert store.load().to_storage() == {
        "pageSize": "A4",
        "orientation": "portrait",
        "margin": 10,
        "filename": "document.pdf",
    }


def test_save_then_load(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(ConversionSettings(page_size="Legal", orientation="landscape", margin_mm=5, filename="notes.pdf"))
    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert set(raw) == {"pageSize", "orientation", "margin", "filename"}
    loaded = store.load()
    assert loaded.page_size is PageSize.LEGAL
    assert loaded.orientation is Orientation.LANDSCAPE
    assert loaded.margin_mm == 5
    assert loaded.filename == "notes.pdf"


def test_partial_file_falls_back_per_key(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"orientation": "landscape", "theme": "dark"}), encoding="utf-8")
    loaded = SettingsStore(path).load()
    assert loaded.orientation is Orientation.LANDSCAPE
    assert loaded.page_size is PageSize.A4
    assert loaded.filename == "document.pdf"


def test_update_merges_changes(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.update(margin=0)
    updated = store.update(filename="report.pdf", orientation=None)
    assert updated.margin_mm == 0
    assert updated.filename == "report.pdf"
    assert store.load() == updated


def test_corrupt_file_raises_input_error(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(InputError):
        SettingsStore(path).load()


def test_invalid_values_rejected(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    with pytest.raises(InputError):
        store.update(margin=-1)
    with pytest.raises(InputError):
        store.update(margin=200)
