"""Runtime settings for the analysis pipeline, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name, "")
    normalized = str(value).strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None or not str(value).strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _env_path(env: Mapping[str, str], name: str) -> Optional[str]:
    value = str(env.get(name, "") or "").strip()
    return value or None


@dataclass(frozen=True)
class AnalysisSettings:
    """Defaults for :class:`ghost_note.app.orchestrator.PoemAnalyzer`.

    Per-call arguments to ``analyze`` take precedence over these values.
    ``cache_path`` selects a SQLite cache file; ``None`` keeps the cache in
    memory.
    """

    use_cache: bool = True
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_path: Optional[str] = None
    cmudict_path: Optional[str] = None
    log_level: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AnalysisSettings":
        source = os.environ if env is None else env
        return cls(
            use_cache=_env_flag(source, "GHOST_NOTE_USE_CACHE", True),
            cache_ttl_seconds=_env_float(
                source, "GHOST_NOTE_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS
            ),
            cache_path=_env_path(source, "GHOST_NOTE_CACHE_PATH"),
            cmudict_path=_env_path(source, "GHOST_NOTE_CMUDICT_PATH"),
            log_level=_env_path(source, "GHOST_NOTE_LOG_LEVEL"),
        )


__all__ = ["AnalysisSettings", "DEFAULT_CACHE_TTL_SECONDS"]
