from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from rnship.core.exceptions import ConfigurationError


def _default_home() -> Path:
    return Path.home() / ".rnship"


class BuilderSettings(BaseModel):
    home: Path = Field(default_factory=_default_home)
    """Root for the per-user build cache (``build/``) and staging area (``temp/``)."""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False
    keychain_timeout: int = Field(default=3600, ge=60, le=86400)
    """Auto-lock timeout (seconds) applied to the ephemeral signing keychain."""
    runtime_package: str = "@wavemaker/app-rn-runtime"
    """node_modules package replaced when a local runtime override is given."""

    @property
    def build_root(self) -> Path:
        return self.home / "build"

    @property
    def temp_root(self) -> Path:
        return self.home / "temp"

    @classmethod
    def from_env(cls) -> BuilderSettings:
        """Create :class:`BuilderSettings` from ``RNSHIP_*`` environment variables.

        Reads the following env vars (all optional):

        * ``RNSHIP_HOME`` → ``home``
        * ``RNSHIP_LOG_LEVEL`` → ``log_level``
        * ``RNSHIP_LOG_JSON`` → ``log_json`` (``1``/``true``/``yes`` enable it)
        * ``RNSHIP_KEYCHAIN_TIMEOUT`` → ``keychain_timeout`` (integer seconds)
        * ``RNSHIP_RUNTIME_PACKAGE`` → ``runtime_package``

        Any variable that is not set or is empty is left at its default value.

        Raises:
            ConfigurationError: If RNSHIP_KEYCHAIN_TIMEOUT is not an integer.
        """
        kwargs: dict[str, Any] = {}

        home = os.environ.get("RNSHIP_HOME")
        if home:
            kwargs["home"] = Path(home).expanduser()

        log_level = os.environ.get("RNSHIP_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        log_json = os.environ.get("RNSHIP_LOG_JSON")
        if log_json:
            kwargs["log_json"] = log_json.strip().lower() in ("1", "true", "yes")

        timeout_str = os.environ.get("RNSHIP_KEYCHAIN_TIMEOUT")
        if timeout_str:
            try:
                kwargs["keychain_timeout"] = int(timeout_str)
            except ValueError as exc:
                raise ConfigurationError(
                    f"RNSHIP_KEYCHAIN_TIMEOUT must be an integer number of seconds, got {timeout_str!r}",
                    details={"variable": "RNSHIP_KEYCHAIN_TIMEOUT"},
                ) from exc

        runtime_package = os.environ.get("RNSHIP_RUNTIME_PACKAGE")
        if runtime_package:
            kwargs["runtime_package"] = runtime_package

        return cls(**kwargs)
