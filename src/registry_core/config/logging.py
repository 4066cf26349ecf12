"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "info") -> int:
    """Configure the root logger and return the numeric level applied."""

    if level.lower() == "trace":
        root_level = logging.DEBUG
    else:
        root_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=root_level, format=LOG_FORMAT)
    logging.getLogger("registry_core").setLevel(root_level)
    return root_level
