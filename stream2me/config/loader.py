"""Configuration loading helpers for stream2me."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import DownloadSettings

HOME_ENV_VAR = "STREAM2ME_HOME"
SETTINGS_FILENAME = "settings.yaml"


def default_home() -> Path:
    env_root = os.environ.get(HOME_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser().resolve()
    return (Path.home() / ".stream2me").resolve()


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve the home, logs and settings paths."""

    home: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        root = (self.home or default_home()).resolve()
        self.home = root
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.home, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def settings_path(self) -> Path:
        return self.home / SETTINGS_FILENAME


class ConfigRepository:
    """Read and write ``DownloadSettings`` with schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: DownloadSettings | None = None

    def load_settings(self, path: Path | None = None) -> DownloadSettings:
        if path is None and self._cache is not None:
            return self._cache
        target = path or self.locator.settings_path()
        if target.exists():
            settings = DownloadSettings.model_validate(_read_file(target))
        elif path is not None:
            raise FileNotFoundError(f"Settings file not found: {path}")
        else:
            settings = DownloadSettings()
        if path is None:
            self._cache = settings
        return settings

    def save_settings(self, settings: DownloadSettings, path: Path | None = None) -> Path:
        target = path or self.locator.settings_path()
        _write_file(target, settings.model_dump(mode="json"))
        if path is None:
            self._cache = settings
        return target


__all__ = ["ConfigLocator", "ConfigRepository", "HOME_ENV_VAR", "default_home"]
