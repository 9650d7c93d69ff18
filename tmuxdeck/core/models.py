"""Data models for tmux sessions, windows and panes.

Every listing rebuilds these from scratch; nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class CommandResult:
    """Outcome of one external command. Output is whitespace-trimmed."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class TmuxPane:  # pylint: disable=too-many-instance-attributes  # Mirrors tmux pane fields
    id: str
    index: int
    active: bool
    current_path: str
    current_command: str
    width: int
    height: int
    window_id: str
    session_name: str
    connection_id: str

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class TmuxWindow:
    """A window inside a session.

    Addressed by (session_name, index). The index is positional: killing a
    lower-indexed sibling shifts it.
    """

    id: str
    index: int
    name: str
    active: bool
    session_name: str
    connection_id: str
    panes: list[TmuxPane] = field(default_factory=list)

    @property
    def target(self) -> str:
        return f"{self.session_name}:{self.index}"


@dataclass
class TmuxSession:  # pylint: disable=too-many-instance-attributes  # Mirrors tmux session fields
    """A tmux session. `name` is the addressing key, `id` is informational."""

    id: str
    name: str
    attached: bool
    attached_count: int
    window_count: int
    connection_id: str
    windows: list[TmuxWindow] = field(default_factory=list)
    created_at: datetime | None = None


class SplitDirection(str, Enum):
    HORIZONTAL = "-h"
    VERTICAL = "-v"


class SwapDirection(str, Enum):
    PREVIOUS = "-U"
    NEXT = "-D"


class ResizeDirection(str, Enum):
    UP = "-U"
    DOWN = "-D"
    LEFT = "-L"
    RIGHT = "-R"

    @classmethod
    def from_str(cls, value: str) -> "ResizeDirection":
        """Parse a direction name (up/down/left/right)."""
        try:
            return cls[value.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown resize direction '{value}'") from e
