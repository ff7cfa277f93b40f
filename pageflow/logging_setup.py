"""Logging defaults for applications embedding pageflow."""

from __future__ import annotations

import logging
from typing import Optional

from .config import RunnerConfig

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None, *, config: Optional[RunnerConfig] = None) -> None:
    """Configure the root logger once; explicit ``level`` wins over ``config``."""

    resolved = level or (config.log_level if config else "INFO")
    logging.basicConfig(level=getattr(logging, resolved.upper(), logging.INFO), format=LOG_FORMAT)
    logging.getLogger("pageflow").setLevel(resolved.upper())
