"""Configuration module for the zap environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

_DEF_HOME = Path.home() / ".zap"


def zap_home() -> Path:
    """Resolve the zap state directory, honouring ZAP_HOME."""
    override = os.environ.get("ZAP_HOME")
    return Path(override).expanduser() if override else _DEF_HOME


def _env_flag(name: str) -> bool:
    value = os.environ.get(name)
    if value is None:
        return False
    return value.strip().lower() not in ("", "0", "false", "no")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one zap invocation."""

    auto_yes: bool = False
    backend: str | None = None
    check_updates: bool = True
    log_level: str = "INFO"
    verbose: bool = False
    debounce_ms: int = 300
    min_query_length: int = 2
    search_limit: int = 30
    use_sudo: bool = True

    @property
    def debounce(self) -> float:
        """Debounce interval in seconds."""
        return self.debounce_ms / 1000

    @property
    def log_file(self) -> Path:
        return zap_home() / "logs" / "zap.log"

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, then apply CLI overrides.

    ZAP_DISABLE_UPDATE_CHECK is read here once so the release check can be
    threaded into the dispatcher as a plain boolean.
    """
    settings = Settings(
        auto_yes=_env_flag("ZAP_AUTO_YES"),
        backend=os.environ.get("ZAP_BACKEND") or None,
        check_updates="ZAP_DISABLE_UPDATE_CHECK" not in os.environ,
        log_level=os.environ.get("ZAP_LOG_LEVEL", "INFO").upper(),
        debounce_ms=_env_int("ZAP_DEBOUNCE_MS", 300),
        search_limit=_env_int("ZAP_SEARCH_LIMIT", 30),
    )
    return settings.with_overrides(**overrides)
