"""Per-user tmux config file edits for mouse mode.

All operations are best-effort: a missing or unreadable file is logged and
treated as empty, never raised.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from tmuxdeck.constants import MOUSE_CONFIG_LINE, MOUSE_CONFIG_PATTERN

logger = logging.getLogger(__name__)

_MOUSE_LINE_RE = re.compile(MOUSE_CONFIG_PATTERN)


class TmuxConfigFile:
    """The tmux config file that holds the persistent mouse setting."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read_lines(self) -> list[str] | None:
        try:
            return self.path.read_text(encoding="utf-8").splitlines(keepends=True)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Failed to read tmux config %s: %s", self.path, e)
            return None

    def has_mouse_line(self) -> bool:
        lines = self._read_lines() or []
        return any(_MOUSE_LINE_RE.match(line) for line in lines)

    def add_mouse_line(self) -> bool:
        """Append the mouse line unless an equivalent one exists.

        Returns:
            True if the file now contains a mouse line.
        """
        if self.has_mouse_line():
            return True

        existing = self._read_lines() or []
        prefix = "" if not existing or existing[-1].endswith("\n") else "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(f"{prefix}{MOUSE_CONFIG_LINE}\n")
        except OSError as e:
            logger.warning("Failed to append mouse setting to %s: %s", self.path, e)
            return False
        logger.info("Added '%s' to %s", MOUSE_CONFIG_LINE, self.path)
        return True

    def remove_mouse_lines(self) -> int:
        """Delete every line matching the mouse pattern.

        Returns:
            Number of lines removed (0 when the file is missing).
        """
        lines = self._read_lines()
        if lines is None:
            return 0

        kept = [line for line in lines if not _MOUSE_LINE_RE.match(line)]
        removed = len(lines) - len(kept)
        if removed == 0:
            return 0

        try:
            self.path.write_text("".join(kept), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to remove mouse setting from %s: %s", self.path, e)
            return 0
        logger.info("Removed %d mouse setting line(s) from %s", removed, self.path)
        return removed
