"""Persistent per-user configuration (~/.gatorconfig.json)."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

CONFIG_FILE_NAME = ".gatorconfig.json"
DEFAULT_DB_PATH = "~/.local/share/gator/gator.sqlite3"


def default_config_path() -> Path:
    env = os.getenv("GATOR_CONFIG")
    if env:
        return Path(env).expanduser()
    return Path.home() / CONFIG_FILE_NAME


def sqlite_path(db_url: str) -> str:
    """Accept either a plain path or a sqlite:/// URL."""
    for prefix in ("sqlite:///", "sqlite://"):
        if db_url.startswith(prefix):
            db_url = db_url[len(prefix):]
            break
    return os.path.expanduser(db_url)


@dataclass
class Config:
    db_url: str = ""
    current_user_name: str = ""

    def to_dict(self) -> dict:
        return {"db_url": self.db_url, "current_user_name": self.current_user_name}


class SessionConfig:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else default_config_path()
        self._config: Optional[Config] = None

    def read(self) -> Config:
        """
        Load the config file. A missing file is an empty config;
        db_url falls back to $DATABASE_URL (a local .env is honoured)
        and then to DEFAULT_DB_PATH.
        """
        data = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except (OSError, ValueError) as exc:
                raise ConfigError(f"cannot read config {self.path}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"config {self.path} must hold a JSON object")

        load_dotenv(find_dotenv(usecwd=True))
        db_url = data.get("db_url") or os.getenv("DATABASE_URL") or DEFAULT_DB_PATH
        self._config = Config(
            db_url=str(db_url),
            current_user_name=str(data.get("current_user_name") or ""),
        )
        return self._config

    @property
    def config(self) -> Config:
        if self._config is None:
            return self.read()
        return self._config

    def set_current_user(self, name: str) -> None:
        cfg = self.config
        cfg.current_user_name = name
        self._write(cfg)

    def _write(self, cfg: Config) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(cfg.to_dict(), indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot write config {self.path}: {exc}") from exc

    def describe(self) -> str:
        cfg = self.config
        return "\n".join(
            [
                f"config:       {self.path}",
                f"db_url:       {cfg.db_url}",
                f"current user: {cfg.current_user_name or '(none)'}",
            ]
        )
