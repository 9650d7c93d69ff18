"""Tmux service - wraps all tmux operations.

Listings degrade to empty lists on any failure (tmux missing and "nothing
exists" look the same). Mutations issue exactly one command and raise
ExecutionError on a nonzero exit.
"""

from __future__ import annotations

import logging
import shlex
from typing import Optional

from tmuxdeck.config import config
from tmuxdeck.core.connection_manager import ConnectionManager
from tmuxdeck.core.errors import ExecutionError
from tmuxdeck.core.models import (
    CommandResult,
    ResizeDirection,
    SplitDirection,
    SwapDirection,
    TmuxPane,
    TmuxSession,
    TmuxWindow,
)
from tmuxdeck.core.tmux_config_file import TmuxConfigFile
from tmuxdeck.core.tmux_parsers import (
    PANE_SCHEMA,
    SESSION_SCHEMA,
    WINDOW_SCHEMA,
    parse_panes,
    parse_sessions,
    parse_windows,
)

logger = logging.getLogger(__name__)


class TmuxService:
    """Lists and mutates tmux sessions, windows and panes per connection."""

    def __init__(
        self,
        connection_manager: ConnectionManager,
        *,
        tmux_binary: Optional[str] = None,
        config_file: Optional[str] = None,
        resize_amount: Optional[int] = None,
    ) -> None:
        self._connections = connection_manager
        self.tmux_binary = tmux_binary or config.tmux.binary
        self.config_file = TmuxConfigFile(config_file or config.tmux.config_file)
        self.resize_amount = config.tmux.resize_amount if resize_amount is None else resize_amount

    def _command(self, *args: str) -> str:
        return shlex.join([self.tmux_binary, *args])

    async def _run(self, connection_id: str, *args: str) -> CommandResult:
        return await self._connections.execute(connection_id, self._command(*args))

    async def _mutate(self, connection_id: str, default_error: str, *args: str) -> CommandResult:
        command = self._command(*args)
        result = await self._connections.execute(connection_id, command)
        if not result.ok:
            logger.debug("tmux mutation failed (exit=%d): %s", result.exit_code, command)
            raise ExecutionError(result.stderr or default_error, stderr=result.stderr, command=command)
        return result

    async def is_tmux_available(self, connection_id: str) -> bool:
        result = await self._connections.execute(connection_id, shlex.join(["which", self.tmux_binary]))
        return result.ok and bool(result.stdout)

    # --- Listing ---

    async def list_sessions(self, connection_id: str) -> list[TmuxSession]:
        result = await self._run(connection_id, "list-sessions", "-F", SESSION_SCHEMA.format)
        if not result.ok or not result.stdout:
            return []
        return parse_sessions(result.stdout, connection_id)

    async def list_windows(self, connection_id: str, session_name: str) -> list[TmuxWindow]:
        result = await self._run(connection_id, "list-windows", "-t", session_name, "-F", WINDOW_SCHEMA.format)
        if not result.ok or not result.stdout:
            return []
        return parse_windows(result.stdout, connection_id, session_name)

    async def list_panes(self, connection_id: str, session_name: str, window: str | int) -> list[TmuxPane]:
        """List panes of one window.

        Args:
            connection_id: Connection to run against
            session_name: Owning session
            window: Window index or id; stored as each pane's window_id
        """
        window_id = str(window)
        result = await self._run(
            connection_id, "list-panes", "-t", f"{session_name}:{window_id}", "-F", PANE_SCHEMA.format
        )
        if not result.ok or not result.stdout:
            return []
        return parse_panes(result.stdout, connection_id, session_name, window_id)

    async def get_session_tree(self, connection_id: str) -> list[TmuxSession]:
        """Compose sessions -> windows -> panes, one listing at a time.

        No snapshot isolation: tmux state may change between sub-listings.
        """
        sessions = await self.list_sessions(connection_id)
        for session in sessions:
            session.windows = await self.list_windows(connection_id, session.name)
            for window in session.windows:
                window.panes = await self.list_panes(connection_id, session.name, window.index)
        return sessions

    # --- Sessions ---

    async def create_session(self, connection_id: str, name: Optional[str] = None) -> Optional[TmuxSession]:
        """Create a detached session and return it from a fresh listing.

        Without a name, the last listed session is assumed to be the new one.
        That is racy if something else creates a session concurrently.
        """
        args = ["new-session", "-d"]
        if name:
            args.extend(["-s", name])
        await self._mutate(connection_id, "Failed to create session", *args)

        sessions = await self.list_sessions(connection_id)
        if name:
            return next((s for s in sessions if s.name == name), None)
        return sessions[-1] if sessions else None

    async def kill_session(self, connection_id: str, session_name: str) -> None:
        await self._mutate(connection_id, "Failed to kill session", "kill-session", "-t", session_name)

    async def rename_session(self, connection_id: str, old_name: str, new_name: str) -> None:
        await self._mutate(connection_id, "Failed to rename session", "rename-session", "-t", old_name, new_name)

    def get_attach_command(self, session_name: str) -> str:
        """Attach command text for the caller to run in a terminal."""
        return self._command("attach-session", "-t", session_name)

    # --- Windows ---

    async def create_window(self, connection_id: str, session_name: str, window_name: Optional[str] = None) -> None:
        args = ["new-window", "-t", session_name]
        if window_name:
            args.extend(["-n", window_name])
        await self._mutate(connection_id, "Failed to create window", *args)

    async def kill_window(self, connection_id: str, session_name: str, window_index: int) -> None:
        await self._mutate(connection_id, "Failed to kill window", "kill-window", "-t", f"{session_name}:{window_index}")

    async def rename_window(self, connection_id: str, session_name: str, window_index: int, new_name: str) -> None:
        await self._mutate(
            connection_id,
            "Failed to rename window",
            "rename-window",
            "-t",
            f"{session_name}:{window_index}",
            new_name,
        )

    async def select_window(self, connection_id: str, session_name: str, window_index: int) -> None:
        await self._mutate(
            connection_id, "Failed to select window", "select-window", "-t", f"{session_name}:{window_index}"
        )

    # --- Panes ---

    async def split_pane(self, connection_id: str, target: str, direction: SplitDirection) -> None:
        """Split a pane (by id) or a window's active pane (by session:index)."""
        label = "horizontally" if direction is SplitDirection.HORIZONTAL else "vertically"
        await self._mutate(
            connection_id, f"Failed to split pane {label}", "split-window", direction.value, "-t", target
        )

    async def split_pane_horizontal(self, connection_id: str, target: str) -> None:
        await self.split_pane(connection_id, target, SplitDirection.HORIZONTAL)

    async def split_pane_vertical(self, connection_id: str, target: str) -> None:
        await self.split_pane(connection_id, target, SplitDirection.VERTICAL)

    async def kill_pane(self, connection_id: str, pane_id: str) -> None:
        await self._mutate(connection_id, "Failed to kill pane", "kill-pane", "-t", pane_id)

    async def select_pane(self, connection_id: str, pane_id: str) -> None:
        await self._mutate(connection_id, "Failed to select pane", "select-pane", "-t", pane_id)

    async def swap_pane(self, connection_id: str, pane_id: str, direction: SwapDirection) -> None:
        await self._mutate(connection_id, "Failed to swap pane", "swap-pane", "-t", pane_id, direction.value)

    async def resize_pane(
        self,
        connection_id: str,
        pane_id: str,
        direction: ResizeDirection,
        amount: Optional[int] = None,
    ) -> None:
        """Resize a pane by `amount` lines/columns (default from config)."""
        if amount is None:
            amount = self.resize_amount
        if amount <= 0:
            raise ValueError("Amount must be a positive number")
        await self._mutate(
            connection_id, "Failed to resize pane", "resize-pane", "-t", pane_id, direction.value, str(amount)
        )

    # --- Global options / mouse mode ---

    async def set_global_option(self, connection_id: str, option: str, value: str) -> None:
        await self._mutate(connection_id, f"Failed to set option {option}", "set-option", "-g", option, value)

    async def is_mouse_mode_enabled(self, connection_id: str) -> bool:
        result = await self._run(connection_id, "show-options", "-gv", "mouse")
        return result.ok and result.stdout.strip() == "on"

    async def enable_mouse_mode(self, connection_id: str) -> None:
        """Persist `set -g mouse on` (once), apply it live, reload config."""
        self.config_file.add_mouse_line()
        await self.set_global_option(connection_id, "mouse", "on")

        reload = await self._run(connection_id, "source-file", str(self.config_file.path))
        if not reload.ok:
            logger.debug("Config reload skipped for %s: %s", self.config_file.path, reload.stderr)

    async def disable_mouse_mode(self, connection_id: str) -> None:
        """Strip persisted mouse lines and turn the live option off."""
        self.config_file.remove_mouse_lines()
        await self.set_global_option(connection_id, "mouse", "off")

    async def toggle_mouse_mode(self, connection_id: str) -> bool:
        """Flip mouse mode.

        Returns:
            True if mouse mode is now enabled
        """
        if await self.is_mouse_mode_enabled(connection_id):
            await self.disable_mouse_mode(connection_id)
            return False
        await self.enable_mouse_mode(connection_id)
        return True
