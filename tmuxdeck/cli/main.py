"""tmuxdeck: command-line control of tmux sessions and backend events.

Single-target failures print the raw tmux error; batch deletes print
success/failure counts only.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Optional, Sequence

from tmuxdeck.config import config, reload_config
from tmuxdeck.constants import LOCAL_CONNECTION_ID
from tmuxdeck.core.batch_ops import BatchMutationOrchestrator, BatchResult
from tmuxdeck.core.connection_manager import ConnectionManager
from tmuxdeck.core.errors import ExecutionError
from tmuxdeck.core.event_stream import EventStreamClient, EventType
from tmuxdeck.core.models import ResizeDirection, SplitDirection, SwapDirection, TmuxSession
from tmuxdeck.core.tmux_service import TmuxService
from tmuxdeck.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tmuxdeck", description="Control tmux sessions and watch backend events.")
    parser.add_argument("--connection", default=LOCAL_CONNECTION_ID, help="Connection id (default: local).")
    parser.add_argument("--log-level", default=None, help="Override TMUXDECK_LOG_LEVEL.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("tree", help="Show sessions, windows and panes.")
    sub.add_parser("sessions", help="List sessions.")

    p = sub.add_parser("new-session", help="Create a detached session.")
    p.add_argument("name", nargs="?", default=None)
    p = sub.add_parser("kill-session", help="Kill one or more sessions.")
    p.add_argument("names", nargs="+")
    p = sub.add_parser("rename-session", help="Rename a session.")
    p.add_argument("old")
    p.add_argument("new")
    p = sub.add_parser("attach", help="Print the attach command for a session.")
    p.add_argument("name")

    p = sub.add_parser("new-window", help="Create a window in a session.")
    p.add_argument("session")
    p.add_argument("name", nargs="?", default=None)
    p = sub.add_parser("kill-window", help="Kill one or more windows of a session.")
    p.add_argument("session")
    p.add_argument("indices", nargs="+", type=int)
    p = sub.add_parser("rename-window", help="Rename a window.")
    p.add_argument("session")
    p.add_argument("index", type=int)
    p.add_argument("new")
    p = sub.add_parser("select-window", help="Switch to a window.")
    p.add_argument("session")
    p.add_argument("index", type=int)

    p = sub.add_parser("split", help="Split a pane (pane id) or window (session:index).")
    p.add_argument("target")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--horizontal", action="store_const", dest="direction", const=SplitDirection.HORIZONTAL)
    group.add_argument("--vertical", action="store_const", dest="direction", const=SplitDirection.VERTICAL)
    p = sub.add_parser("kill-pane", help="Close one or more panes by id.")
    p.add_argument("pane_ids", nargs="+")
    p = sub.add_parser("select-pane", help="Switch to a pane.")
    p.add_argument("pane_id")
    p = sub.add_parser("swap-pane", help="Swap a pane with its neighbour.")
    p.add_argument("pane_id")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--previous", action="store_const", dest="direction", const=SwapDirection.PREVIOUS)
    group.add_argument("--next", action="store_const", dest="direction", const=SwapDirection.NEXT)
    p = sub.add_parser("resize-pane", help="Resize a pane.")
    p.add_argument("pane_id")
    p.add_argument("direction", choices=["up", "down", "left", "right"])
    p.add_argument("amount", nargs="?", type=int, default=None)

    p = sub.add_parser("mouse", help="Show or change global mouse mode.")
    p.add_argument("action", choices=["on", "off", "toggle", "status"])

    p = sub.add_parser("watch", help="Print backend update events as they arrive.")
    p.add_argument("--url", default=None, help="Backend base URL (default: server.url from config).")
    return parser


def _print_tree(sessions: list[TmuxSession]) -> None:
    if not sessions:
        print("No active tmux sessions")
        return
    for session in sessions:
        marker = " (attached)" if session.attached else ""
        print(f"{session.name}{marker}  [{session.window_count} windows]")
        for window in session.windows:
            active = " (active)" if window.active else ""
            print(f"  {window.index}: {window.name}{active}")
            for pane in window.panes:
                star = "*" if pane.active else " "
                print(f"    {star}{pane.id} {pane.current_command or '-'} {pane.current_path} {pane.size}")


def _report_batch(result: BatchResult, noun: str, verb: str) -> int:
    message = result.summary(noun, verb)
    if result.failed:
        sys.stderr.write(f"{message}\n")
        return 1
    print(message)
    return 0


async def _kill_windows(service: TmuxService, connection_id: str, session: str, indices: Sequence[int]) -> int:
    by_index = {w.index: w for w in await service.list_windows(connection_id, session)}
    missing = [i for i in indices if i not in by_index]
    if missing:
        sys.stderr.write(f"No such window(s) in {session}: {', '.join(map(str, missing))}\n")
        return 1
    result = await BatchMutationOrchestrator(service).kill_windows([by_index[i] for i in indices])
    return _report_batch(result, "window", "deleted")


async def _kill_panes(service: TmuxService, connection_id: str, pane_ids: Sequence[str]) -> int:
    tree = await service.get_session_tree(connection_id)
    by_id = {pane.id: pane for session in tree for window in session.windows for pane in window.panes}
    missing = [p for p in pane_ids if p not in by_id]
    if missing:
        sys.stderr.write(f"No such pane(s): {', '.join(missing)}\n")
        return 1
    result = await BatchMutationOrchestrator(service).kill_panes([by_id[p] for p in pane_ids])
    return _report_batch(result, "pane", "closed")


async def _kill_sessions(service: TmuxService, connection_id: str, names: Sequence[str]) -> int:
    by_name = {s.name: s for s in await service.list_sessions(connection_id)}
    missing = [n for n in names if n not in by_name]
    if missing:
        sys.stderr.write(f"No such session(s): {', '.join(missing)}\n")
        return 1
    result = await BatchMutationOrchestrator(service).kill_sessions([by_name[n] for n in names])
    return _report_batch(result, "session", "deleted")


async def _mouse(service: TmuxService, connection_id: str, action: str) -> int:
    if action == "status":
        enabled = await service.is_mouse_mode_enabled(connection_id)
        print("Mouse mode enabled" if enabled else "Mouse mode disabled")
        return 0
    if action == "toggle":
        enabled = await service.toggle_mouse_mode(connection_id)
    elif action == "on":
        await service.enable_mouse_mode(connection_id)
        enabled = True
    else:
        await service.disable_mouse_mode(connection_id)
        enabled = False
    print("Mouse mode enabled. You can now use mouse wheel to scroll." if enabled else "Mouse mode disabled")
    return 0


async def _watch(url: Optional[str]) -> int:
    client = EventStreamClient(url)
    for event_type in EventType:
        client.on(event_type, lambda name=event_type.value: print(name, flush=True))

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    def on_sighup() -> None:
        reload_config()
        if url is None:
            client.set_base_url(config.server.url)

    loop.add_signal_handler(signal.SIGHUP, on_sighup)
    loop.add_signal_handler(signal.SIGINT, stop.set)
    loop.add_signal_handler(signal.SIGTERM, stop.set)

    client.start()
    try:
        await stop.wait()
    finally:
        await client.aclose()
    return 0


async def run(args: argparse.Namespace, service: TmuxService) -> int:
    """Dispatch one parsed command. Returns the process exit code."""
    conn = args.connection
    cmd = args.command
    try:
        if cmd == "tree":
            _print_tree(await service.get_session_tree(conn))
        elif cmd == "sessions":
            _print_tree(await service.list_sessions(conn))
        elif cmd == "new-session":
            session = await service.create_session(conn, args.name)
            print(f'Session "{session.name if session else args.name or "new session"}" created')
        elif cmd == "kill-session":
            return await _kill_sessions(service, conn, args.names)
        elif cmd == "rename-session":
            await service.rename_session(conn, args.old, args.new)
            print(f'Session renamed to "{args.new}"')
        elif cmd == "attach":
            print(service.get_attach_command(args.name))
        elif cmd == "new-window":
            await service.create_window(conn, args.session, args.name)
            print("Window created")
        elif cmd == "kill-window":
            return await _kill_windows(service, conn, args.session, args.indices)
        elif cmd == "rename-window":
            await service.rename_window(conn, args.session, args.index, args.new)
            print(f'Window renamed to "{args.new}"')
        elif cmd == "select-window":
            await service.select_window(conn, args.session, args.index)
        elif cmd == "split":
            await service.split_pane(conn, args.target, args.direction)
            label = "horizontally" if args.direction is SplitDirection.HORIZONTAL else "vertically"
            print(f"Pane split {label}")
        elif cmd == "kill-pane":
            return await _kill_panes(service, conn, args.pane_ids)
        elif cmd == "select-pane":
            await service.select_pane(conn, args.pane_id)
        elif cmd == "swap-pane":
            await service.swap_pane(conn, args.pane_id, args.direction)
            print("Pane swapped")
        elif cmd == "resize-pane":
            await service.resize_pane(conn, args.pane_id, ResizeDirection.from_str(args.direction), args.amount)
            print("Pane resized")
        elif cmd == "mouse":
            return await _mouse(service, conn, args.action)
        elif cmd == "watch":
            return await _watch(args.url)
    except (ExecutionError, ValueError) as e:
        sys.stderr.write(f"tmuxdeck error: {e}\n")
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    connections = ConnectionManager()
    service = TmuxService(connections)
    try:
        return asyncio.run(run(args, service))
    except KeyboardInterrupt:
        return 130
    finally:
        connections.dispose()


if __name__ == "__main__":
    sys.exit(main())
