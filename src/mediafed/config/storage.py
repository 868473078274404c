"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env

APP_DIR_NAME: Final[str] = "mediafed"
SETTINGS_FILENAME: Final[str] = "federation.json"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    settings_filename: str = SETTINGS_FILENAME
    settings_override: Path | None = None

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def settings_path(self, *, ensure: bool = True) -> Path:
        if self.settings_override is not None:
            path = self.settings_override.expanduser().resolve()
            if ensure:
                path.parent.mkdir(parents=True, exist_ok=True)
            return path
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.settings_filename


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = optional_env("MEDIAFED_DATA_DIR")
    env_settings = optional_env("MEDIAFED_SETTINGS_PATH")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(
        data_dir=data_dir,
        settings_override=Path(env_settings) if env_settings else None,
    )
