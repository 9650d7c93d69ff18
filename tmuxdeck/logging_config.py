"""tmuxdeck logging configuration.

All modules log through `logging.getLogger(__name__)`; this wires a single
stderr handler onto the `tmuxdeck` logger. Level comes from the argument,
then `TMUXDECK_LOG_LEVEL`, then `config.logging.level`.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from tmuxdeck.config import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure tmuxdeck logging.

    Args:
        level: Optional override for `TMUXDECK_LOG_LEVEL`.
    """
    if level:
        os.environ["TMUXDECK_LOG_LEVEL"] = level

    resolved = (os.getenv("TMUXDECK_LOG_LEVEL") or config.logging.level).upper()

    root = logging.getLogger("tmuxdeck")
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, resolved, logging.INFO))
    root.propagate = False
