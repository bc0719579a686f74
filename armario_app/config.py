"""Runtime configuration for the Armario service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

DEFAULT_GEMINI_MODEL = "models/gemini-1.5-flash-002"
DEFAULT_DATABASE_PATH = "data/armario.db"
DEFAULT_CONFIG_DIR = "config/environments"


@dataclass
class AppConfig:
    """Settings for one Armario process.

    Only the generative model and the Firebase backend need secrets. With the
    defaults the service starts offline: in-memory accounts and a local
    SQLite item store.
    """

    model: str = DEFAULT_GEMINI_MODEL
    api_key: Optional[str] = None
    firebase_api_key: Optional[str] = None
    identity_backend: str = "local"
    database_path: str = DEFAULT_DATABASE_PATH
    ai_timeout_seconds: float = 30.0
    suggestion_temperature: float = 0.95
    environment: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Read settings from the environment, falling back to a config file.

        The file is ``APP_CONFIG_PATH`` if set, otherwise
        ``<ARMARIO_CONFIG_DIR>/<APP_ENV>.yaml``. A key ``foo_bar`` in the file
        is overridden by the ``FOO_BAR`` environment variable, so secrets can
        stay out of the file.
        """

        environ = os.environ if environ is None else environ
        env_name = environ.get("APP_ENV") or None
        file_values = read_config_file(_config_file_for(environ, env_name))

        def lookup(key: str) -> Optional[str]:
            value = environ.get(key.upper(), file_values.get(key))
            return value or None

        return cls(
            model=lookup("model") or DEFAULT_GEMINI_MODEL,
            api_key=lookup("google_api_key"),
            firebase_api_key=lookup("firebase_api_key"),
            identity_backend=(lookup("identity_backend") or "local").lower(),
            database_path=lookup("database_path") or DEFAULT_DATABASE_PATH,
            ai_timeout_seconds=float(lookup("ai_timeout_seconds") or 30.0),
            suggestion_temperature=float(lookup("suggestion_temperature") or 0.95),
            environment=env_name,
        )


def _config_file_for(environ: Mapping[str, str], env_name: str | None) -> Path | None:
    explicit = environ.get("APP_CONFIG_PATH")
    if explicit:
        return Path(explicit)
    if env_name:
        return Path(environ.get("ARMARIO_CONFIG_DIR", DEFAULT_CONFIG_DIR)) / f"{env_name}.yaml"
    return None


def read_config_file(path: Path | None) -> Dict[str, str]:
    """Parse flat ``key: value`` lines; comments and blank lines are skipped.

    A missing file yields an empty mapping.
    """

    if path is None or not path.is_file():
        return {}

    values: Dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, separator, value = line.partition(":")
        if not separator:
            continue
        values[key.strip()] = value.strip().strip("\"'")
    return values


__all__ = ["AppConfig", "DEFAULT_DATABASE_PATH", "DEFAULT_GEMINI_MODEL", "read_config_file"]
