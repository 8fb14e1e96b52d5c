"""Runtime configuration.

Settings come from ``foodsaver.toml``: top-level keys form the base
configuration and a table named after the active environment (``[test]``,
``[production]``, ...) is overlaid on top. ``FOODSAVER_ENV`` selects the
environment and defaults to ``development``.

    database_uri = "sqlite:///foodsaver.db"

    [production]
    database_uri = "postgresql+psycopg2://foodsaver@localhost/foodsaver"
    debug = false
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

CONFIG_FILE_NAME = "foodsaver.toml"
ENVIRONMENTS = ("development", "test", "staging", "production")


class Config(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    env: str = "development"
    database_uri: str = "sqlite:///foodsaver.db"
    echo_sql: bool = False
    debug: bool = False
    strict_status_transitions: bool = False
    default_page_size: int = 50
    max_page_size: int = 200
    log_level: str | None = None
    log_dir: str = "logs"
    log_file_prefix: str = "foodsaver"
    log_to_file: bool = True
    delivery_webhook_secret: str = ""
    sqlite_busy_timeout: float = 30.0


def current_env() -> str:
    return (os.getenv("FOODSAVER_ENV") or "development").lower()


def find_config_file(start: Path | None = None) -> Path | None:
    """Locate the configuration file.

    ``FOODSAVER_CONFIG`` wins; otherwise search from ``start`` (the working
    directory by default) up to the filesystem root.
    """
    explicit = os.getenv("FOODSAVER_CONFIG")
    if explicit:
        return Path(explicit)

    directory = (start or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        path = candidate / CONFIG_FILE_NAME
        if path.is_file():
            return path
    return None


def _read_settings(path: Path | None, env: str) -> dict[str, Any]:
    if path is None:
        return {}

    with path.open("rb") as fh:
        raw = tomllib.load(fh)

    settings = {key: value for key, value in raw.items() if not isinstance(value, dict)}
    overlay = raw.get(env, {})
    if isinstance(overlay, dict):
        settings.update(overlay)
    return settings


def load_config(env: str | None = None, path: Path | None = None, **overrides: Any) -> Config:
    """Build the configuration for ``env``.

    Precedence, lowest first: built-in defaults, the config file, the
    environment overlay in the file, ``DATABASE_URL``, explicit ``overrides``.
    """
    env = (env or current_env()).lower()
    settings = _read_settings(path or find_config_file(), env)

    database_url = os.getenv("DATABASE_URL")
    if database_url:
        settings["database_uri"] = database_url

    settings.update(overrides)
    settings["env"] = env
    return Config(**settings)
