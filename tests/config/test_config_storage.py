from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from mediafed.config import storage


def test_data_dir_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("MEDIAFED_DATA_DIR", str(custom))

    config = storage.get_storage_config()

    assert config.resolve_data_dir() == custom.resolve()
    assert config.settings_path() == custom.resolve() / storage.SETTINGS_FILENAME
    assert custom.exists()


def test_settings_path_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    target = tmp_path / "elsewhere" / "peers.json"
    monkeypatch.setenv("MEDIAFED_SETTINGS_PATH", str(target))

    path = storage.get_storage_config().settings_path()

    assert path == target.resolve()
    assert target.parent.exists()


def test_default_data_dir_uses_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("MEDIAFED_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))

    config = storage.get_storage_config()

    assert config.data_dir == (tmp_path / "xdg" / storage.APP_DIR_NAME).resolve()
