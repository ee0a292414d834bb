"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups. ``AppConfig.from_env()`` builds one from
``APP_*`` environment variables for deployments that configure through
the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, url="https://example.com", secret_key="s3cr3t")
    """

    # Application
    name: str = "Wren"
    env: str = "production"
    debug: bool = False
    url: str = "http://localhost"
    timezone: str = "UTC"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Security
    secret_key: str = ""

    # Controllers
    controller_namespace: str | None = None  # e.g. "app.controllers"

    # Templates
    template_dir: str | Path = "templates"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # Sessions
    session_cookie: str = "wren_session"
    session_max_age: int = 86400  # 24 hours
    session_secure: bool = False
    session_samesite: str = "lax"

    # Data
    database: str | None = None  # SQLite path, ":memory:" for tests

    # Logging
    log_level: str = "info"
    log_file: str | Path | None = None
    log_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    log_backup_count: int = 5

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    @property
    def is_local(self) -> bool:
        """True when running in the ``local`` environment."""
        return self.env == "local"

    @property
    def is_production(self) -> bool:
        """True when running in the ``production`` environment."""
        return self.env == "production"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        prefix: str = "APP_",
    ) -> AppConfig:
        """Build a config from environment variables.

        Each field maps to ``<prefix><FIELD>`` (``APP_DEBUG``,
        ``APP_SECRET_KEY``, ...). Values are coerced to the field's
        default type. Unset variables keep the default.
        """
        source = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = source.get(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _coerce(raw, f.default)
        return cls(**values)


def _coerce(raw: str, default: object) -> object:
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if raw == "" and default is None:
        return None
    return raw
