"""Helpers for configuring consistent project logging output."""

from __future__ import annotations

import logging
import os
from typing import Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_ENV_LEVEL = "GHOST_NOTE_LOG_LEVEL"
_CONFIGURED = False


def _resolve_level(level: str | int | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    try:
        return int(level)
    except (TypeError, ValueError):
        normalized = str(level).strip().upper()
        return getattr(logging, normalized, logging.INFO)


def configure_logging(level: Optional[str | int] = None, *, force: bool = False) -> int:
    """Initialise root logging handlers for hosts embedding the analyser.

    The pipeline itself never configures logging; it logs through injected or
    module loggers. Hosts call this once at start-up. ``GHOST_NOTE_LOG_LEVEL``
    provides the level when ``level`` is omitted. Returns the resolved level.
    """

    global _CONFIGURED

    env_level = os.environ.get(_ENV_LEVEL)
    resolved_level = _resolve_level(level if level is not None else env_level)

    if _CONFIGURED and not force:
        return resolved_level

    logging.basicConfig(level=resolved_level, format=_DEFAULT_FORMAT, force=force)
    logging.getLogger("ghost_note").setLevel(resolved_level)
    _CONFIGURED = True
    return resolved_level


__all__ = ["configure_logging"]
