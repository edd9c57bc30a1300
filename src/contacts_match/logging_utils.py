from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import MatchConfig

ENV_LEVEL_VAR = "CONTACTS_MATCH_LOG_LEVEL"


def _resolve_level(level_name: Optional[str]) -> int:
    """Map a level name (``"debug"``, ``"WARNING"``, ``"10"``) to its numeric value.

    Unknown names resolve to ``logging.WARNING`` so a typo never makes the tools chattier.
    """
    normalized = (level_name or "WARNING").strip().upper()
    if normalized.isdigit():
        return int(normalized)
    level = logging.getLevelName(normalized)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(config: MatchConfig, level_override: Optional[str] = None) -> int:
    """
    Configure the root logger and return the effective level.

    Precedence, highest first:

    1. ``CONTACTS_MATCH_LOG_LEVEL`` environment variable
    2. ``level_override`` (the ``--log-level`` flag)
    3. ``logging.level`` / ``logging.format`` from the YAML config
    4. ``WARNING``
    """
    level_name = os.getenv(ENV_LEVEL_VAR) or level_override or config.logging.level
    level_value = _resolve_level(level_name)

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(level=level_value, format=config.logging.format)
    return level_value
