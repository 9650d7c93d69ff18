"""Field schemas and parsers for tmux listing output.

Listings are requested with `-F` in a fixed, colon-delimited,
one-record-per-line format. Each record type has an explicit ordered field
schema; lines with fewer fields than required are dropped rather than
partially parsed.

PUBLIC API:
  - SESSION_SCHEMA / WINDOW_SCHEMA / PANE_SCHEMA: field schemas
  - parse_sessions / parse_windows / parse_panes: stdout -> models
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from tmuxdeck.constants import FIELD_SEPARATOR
from tmuxdeck.core.models import TmuxPane, TmuxSession, TmuxWindow

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RecordSchema:
    """Ordered tmux format fields for one record type.

    Attributes:
        fields: tmux format variable names, in output order.
        required: Minimum number of fields a line must carry.
        greedy: Field allowed to contain the separator. When a line carries
            more parts than fields, the surplus is re-joined into this field
            so later fields keep their positions.
    """

    fields: tuple[str, ...]
    required: int
    greedy: Optional[str] = None

    @property
    def format(self) -> str:
        return FIELD_SEPARATOR.join(f"#{{{name}}}" for name in self.fields)

    def parse_line(self, line: str) -> Optional["Record"]:
        """Split one output line into a Record, or None if malformed."""
        parts = line.split(FIELD_SEPARATOR)
        if len(parts) < self.required:
            return None

        if self.greedy is not None and len(parts) > len(self.fields):
            pos = self.fields.index(self.greedy)
            tail = len(self.fields) - pos - 1
            end = len(parts) - tail
            parts = parts[:pos] + [FIELD_SEPARATOR.join(parts[pos:end])] + parts[end:]

        return Record(dict(zip(self.fields, parts)))


class Record:
    """Named, typed accessors over one parsed line."""

    def __init__(self, values: dict[str, str]) -> None:
        self._values = values

    def text(self, name: str, default: str = "") -> str:
        return self._values.get(name, default)

    def integer(self, name: str) -> int:
        """Integer field; 0 when missing or unparseable."""
        try:
            return int(self._values.get(name, ""))
        except ValueError:
            return 0

    def flag(self, name: str) -> bool:
        """Boolean field: "0" or empty is False, anything else True."""
        value = self._values.get(name, "")
        return value != "" and value != "0"

    def timestamp(self, name: str) -> Optional[datetime]:
        """Epoch-seconds field as an aware datetime; None when absent."""
        raw = self._values.get(name, "")
        if not raw:
            return None
        try:
            return datetime.fromtimestamp(int(raw), tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None


SESSION_SCHEMA = RecordSchema(
    fields=("session_id", "session_name", "session_attached", "session_windows", "session_created"),
    required=4,
)

WINDOW_SCHEMA = RecordSchema(
    fields=("window_id", "window_index", "window_name", "window_active"),
    required=4,
    greedy="window_name",
)

PANE_SCHEMA = RecordSchema(
    fields=(
        "pane_id",
        "pane_index",
        "pane_active",
        "pane_current_path",
        "pane_current_command",
        "pane_width",
        "pane_height",
    ),
    required=7,
    greedy="pane_current_path",
)


def _parse(output: str, schema: RecordSchema, build: Callable[[Record], T]) -> list[T]:
    items: list[T] = []
    for line in output.split("\n"):
        if not line.strip():
            continue
        record = schema.parse_line(line)
        if record is None:
            logger.warning("Dropping malformed tmux record (%d fields required): %r", schema.required, line)
            continue
        items.append(build(record))
    return items


def parse_sessions(output: str, connection_id: str) -> list[TmuxSession]:
    """Parse `list-sessions` output built from SESSION_SCHEMA."""

    def build(record: Record) -> TmuxSession:
        return TmuxSession(
            id=record.text("session_id"),
            name=record.text("session_name"),
            attached=record.flag("session_attached"),
            attached_count=record.integer("session_attached"),
            window_count=record.integer("session_windows"),
            connection_id=connection_id,
            created_at=record.timestamp("session_created"),
        )

    return _parse(output, SESSION_SCHEMA, build)


def parse_windows(output: str, connection_id: str, session_name: str) -> list[TmuxWindow]:
    """Parse `list-windows` output built from WINDOW_SCHEMA."""

    def build(record: Record) -> TmuxWindow:
        return TmuxWindow(
            id=record.text("window_id"),
            index=record.integer("window_index"),
            name=record.text("window_name"),
            active=record.flag("window_active"),
            session_name=session_name,
            connection_id=connection_id,
        )

    return _parse(output, WINDOW_SCHEMA, build)


def parse_panes(output: str, connection_id: str, session_name: str, window_id: str) -> list[TmuxPane]:
    """Parse `list-panes` output built from PANE_SCHEMA."""

    def build(record: Record) -> TmuxPane:
        return TmuxPane(
            id=record.text("pane_id"),
            index=record.integer("pane_index"),
            active=record.flag("pane_active"),
            current_path=record.text("pane_current_path") or "~",
            current_command=record.text("pane_current_command"),
            width=record.integer("pane_width"),
            height=record.integer("pane_height"),
            window_id=window_id,
            session_name=session_name,
            connection_id=connection_id,
        )

    return _parse(output, PANE_SCHEMA, build)
