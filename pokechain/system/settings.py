from __future__ import annotations
import json, os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Callable, List, Optional
from pokechain.core.logging import logger
from pokechain.core.paths import default_save_dir
from pokechain.data.pokeapi import POKEAPI_BASE

SETTINGS_FILENAME = ".pokechain_settings.json"
LOG_LEVELS = {"DEBUG", "INFO", "WARN", "ERROR"}
CATALOG_SOURCES = {"bundled", "pokeapi"}

@dataclass
class SettingsData:
    text_speed: int = 2            # 1 fast, 2 normal, 3 slow
    log_level: str = "WARN"        # DEBUG / INFO / WARN / ERROR
    autosave: bool = True          # snapshot after every profile mutation
    debug: bool = False
    catalog_source: str = "bundled"
    catalog_url: str = POKEAPI_BASE
    request_timeout: float = 10.0
    save_dir: str = ""             # empty: ~/.pokechain_saves

    def normalize(self):
        if self.text_speed not in {1, 2, 3}:
            self.text_speed = 2
        if self.log_level not in LOG_LEVELS:
            self.log_level = "WARN"
        if self.catalog_source not in CATALOG_SOURCES:
            self.catalog_source = "bundled"
        try:
            self.request_timeout = float(self.request_timeout)
        except (TypeError, ValueError):
            self.request_timeout = 10.0
        if self.request_timeout <= 0:
            self.request_timeout = 10.0
        if not self.catalog_url:
            self.catalog_url = POKEAPI_BASE

    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def resolved_save_dir(self) -> Path:
        return Path(self.save_dir).expanduser() if self.save_dir else default_save_dir()


class Settings:
    def __init__(self, data: SettingsData, path: Path):
        self.data = data
        self.path = path
        self._listeners: List[Callable[[SettingsData], None]] = []

    @classmethod
    def _resolve_path(cls) -> Path:
        home = Path(os.path.expanduser("~"))
        if home.is_dir() and os.access(home, os.W_OK):
            return home / SETTINGS_FILENAME
        return Path.cwd() / SETTINGS_FILENAME

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        path = path or cls._resolve_path()
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                # Backfill missing fields (migration safe)
                field_names = {f.name for f in fields(SettingsData)}
                data = SettingsData(**{k: v for k, v in raw.items() if k in field_names})
                data.normalize()
                logger.debug("SettingsLoaded", path=str(path))
                return cls(data, path)
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.warn("SettingsParseFailedUsingDefaults", path=str(path), error=str(e))
        data = SettingsData()
        data.normalize()
        return cls(data, path)

    def save(self):
        try:
            self.path.write_text(json.dumps(asdict(self.data), indent=2))
            logger.debug("SettingsSaved", path=str(self.path))
        except OSError as e:
            logger.error("SettingsSaveFailed", error=str(e))

    def update(self, **changes):
        for k, v in changes.items():
            if hasattr(self.data, k):
                setattr(self.data, k, v)
        self.data.normalize()
        logger.set_level(self.data.effective_log_level())  # type: ignore[arg-type]
        self.save()
        self._notify()

    def on_change(self, fn: Callable[[SettingsData], None]):
        self._listeners.append(fn)

    def _notify(self):
        for fn in self._listeners:
            fn(self.data)


__all__ = ["Settings", "SettingsData", "SETTINGS_FILENAME"]
