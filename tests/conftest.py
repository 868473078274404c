from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from mediafed.adapters.settings_store import JsonSettingsStore

if TYPE_CHECKING:
    from pathlib import Path

_ENV_VARS = (
    "MEDIAFED_DATA_DIR",
    "MEDIAFED_SETTINGS_PATH",
    "MEDIAFED_HTTP_TIMEOUT",
    "MEDIAFED_FETCH_CONCURRENCY",
    "MEDIAFED_REFRESH_INTERVAL",
    "MEDIAFED_GATE_TIMEOUT",
    "MEDIAFED_ADMIN_TOKEN",
    "MEDIAFED_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MEDIAFED_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def settings_store(tmp_path: Path) -> JsonSettingsStore:
    return JsonSettingsStore(tmp_path / "federation.json")
