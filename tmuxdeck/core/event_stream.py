"""Streaming event client for backend update notifications.

Holds one long-lived GET <base>/api/events connection, splits the
text/event-stream body into blank-line-delimited frames and fans each named
event out to its listeners. Frames carry no payload that matters: arrival is
the signal, and consumers re-fetch state elsewhere.

States: DISCONNECTED -> CONNECTING -> STREAMING, with RECONNECTING between
attempts. Reconnect delay starts at 3s, doubles per failed or ended attempt,
caps at 30s, and resets on reaching STREAMING or on a forced reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Optional

import httpx

from tmuxdeck.config import config
from tmuxdeck.constants import (
    EVENTS_PATH,
    RECONNECT_BACKOFF_MULTIPLIER,
    RECONNECT_INITIAL_DELAY_S,
    RECONNECT_MAX_DELAY_S,
)
from tmuxdeck.core.errors import TransportError

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
SleepFn = Callable[[float], Awaitable[None]]

__all__ = ["EventStreamClient", "EventType", "FrameParser", "StreamState", "Subscription", "parse_event_name"]


class EventType(str, Enum):
    """Closed set of backend update notifications."""

    TICKET_UPDATED = "ticket-updated"
    KNOWLEDGE_UPDATED = "knowledge-updated"
    SPEC_UPDATED = "spec-updated"

    @classmethod
    def from_name(cls, name: str) -> Optional["EventType"]:
        try:
            return cls(name)
        except ValueError:
            return None


class StreamState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"


class FrameParser:
    """Buffers stream text and yields complete frames.

    A frame ends at a blank line. CRLF line endings are normalised, including
    when the CR and LF arrive in different chunks.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> list[str]:
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        *frames, self._buffer = self._buffer.split("\n\n")
        return frames

    def reset(self) -> None:
        self._buffer = ""


def parse_event_name(frame: str) -> Optional[str]:
    """Return the event name of a frame; the last `event:` line wins."""
    name: Optional[str] = None
    for line in frame.split("\n"):
        if line.startswith("event:"):
            name = line[len("event:") :].strip()
    return name or None


class Subscription:
    """Handle returned by EventStreamClient.on()."""

    def __init__(self, listeners: set[Listener], listener: Listener) -> None:
        self._listeners = listeners
        self._listener = listener

    def unsubscribe(self) -> None:
        """Remove the listener; safe to call more than once."""
        self._listeners.discard(self._listener)


class EventStreamClient:
    """Self-healing event stream with typed listener fan-out.

    Example:
        client = EventStreamClient()
        sub = client.on(EventType.TICKET_UPDATED, refresh_tickets)
        client.start()
        ...
        await client.aclose()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connect_timeout: Optional[float] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Backend base URL (default: config.server.url)
            transport: Optional httpx transport (tests use httpx.MockTransport)
            connect_timeout: Connect timeout in seconds; reads never time out
            sleep: Awaitable used for the backoff delay
        """
        self._base_url = (base_url or config.server.url).rstrip("/")
        self._transport = transport
        self._connect_timeout = connect_timeout or config.events.connect_timeout_s
        self._sleep = sleep

        self._listeners: dict[EventType, set[Listener]] = {}
        self._state = StreamState.DISCONNECTED
        self._reconnect_delay = RECONNECT_INITIAL_DELAY_S
        self._task: asyncio.Task[None] | None = None
        self._retired: set[asyncio.Task[None]] = set()
        self._generation = 0
        self._disposed = False

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def url(self) -> str:
        return f"{self._base_url}{EVENTS_PATH}"

    @property
    def reconnect_delay(self) -> float:
        """Delay (seconds) the next reconnect will wait."""
        return self._reconnect_delay

    @property
    def disposed(self) -> bool:
        return self._disposed

    # --- Subscriptions ---

    def on(self, event_type: EventType, listener: Listener) -> Subscription:
        """Register a zero-argument listener for one event type.

        Registering the same listener twice still delivers once per frame.
        """
        listeners = self._listeners.setdefault(event_type, set())
        listeners.add(listener)
        return Subscription(listeners, listener)

    def _dispatch(self, event_type: EventType) -> None:
        for listener in list(self._listeners.get(event_type, ())):
            try:
                listener()
            except Exception:  # pylint: disable=broad-exception-caught  # Listener bugs must not kill the stream
                logger.error("Listener for %s failed", event_type.value, exc_info=True)

    def _handle_frame(self, frame: str) -> None:
        name = parse_event_name(frame)
        if name is None:
            return
        event_type = EventType.from_name(name)
        if event_type is None:
            logger.debug("Ignoring unknown event: %s", name)
            return
        self._dispatch(event_type)

    # --- Lifecycle ---

    def start(self) -> None:
        """Begin connecting (Disconnected -> Connecting)."""
        if self._disposed:
            logger.debug("start() ignored: client disposed")
            return
        if self._task is not None and not self._task.done():
            return
        self._spawn()

    def reconnect(self) -> None:
        """Drop the current connection and reconnect now with reset backoff."""
        if self._disposed:
            return
        self._reconnect_delay = RECONNECT_INITIAL_DELAY_S
        self._cancel_task()
        self._set_state(StreamState.DISCONNECTED)
        self._spawn()

    def set_base_url(self, base_url: str) -> bool:
        """Point the client at a new backend; reconnects if it was running.

        Returns:
            True if the URL changed
        """
        normalized = base_url.rstrip("/")
        if normalized == self._base_url:
            return False
        logger.info("Event stream base URL changed: %s -> %s", self._base_url, normalized)
        self._base_url = normalized
        if self._task is not None:
            self.reconnect()
        else:
            self._reconnect_delay = RECONNECT_INITIAL_DELAY_S
        return True

    def dispose(self) -> None:
        """Stop for good: tear down the connection, timer and listeners."""
        self._disposed = True
        self._cancel_task()
        self._listeners.clear()
        self._set_state(StreamState.DISCONNECTED)

    async def wait_closed(self) -> None:
        """Wait for the background task and any replaced ones to finish."""
        current = _current_task()
        tasks = [t for t in (*self._retired, self._task) if t is not None and t is not current]
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

    async def aclose(self) -> None:
        self.dispose()
        await self.wait_closed()

    def _spawn(self) -> None:
        previous = self._task
        # Replaced tasks may still be closing their HTTP client
        if previous is not None and not previous.done():
            self._retired.add(previous)
            previous.add_done_callback(self._retired.discard)
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._generation), name=f"event-stream-{self._generation}"
        )

    def _cancel_task(self) -> None:
        task = self._task
        # A task cancelling itself (listener or backoff hook) exits at its next loop check instead
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def _is_current(self, generation: int) -> bool:
        return not self._disposed and generation == self._generation

    def _set_state(self, state: StreamState) -> None:
        if state is not self._state:
            logger.debug("Event stream state: %s -> %s", self._state.value, state.value)
            self._state = state

    # --- Connection loop ---

    async def _run(self, generation: int) -> None:
        timeout = httpx.Timeout(None, connect=self._connect_timeout)
        async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
            while self._is_current(generation):
                self._set_state(StreamState.CONNECTING)
                try:
                    await self._stream(client, generation)
                    if self._is_current(generation):
                        logger.info("Event stream ended")
                except TransportError as e:
                    logger.debug("Event stream rejected: %s", e)
                except httpx.HTTPError as e:
                    logger.debug("Event stream transport error: %s", e)
                except Exception as e:  # pylint: disable=broad-exception-caught  # Loop must self-heal
                    logger.error("Unexpected event stream error: %s", e, exc_info=True)

                if not self._is_current(generation):
                    break

                self._set_state(StreamState.RECONNECTING)
                delay = self._reconnect_delay
                self._reconnect_delay = min(delay * RECONNECT_BACKOFF_MULTIPLIER, RECONNECT_MAX_DELAY_S)
                logger.debug("Reconnecting in %.1fs...", delay)
                await self._sleep(delay)

    async def _stream(self, client: httpx.AsyncClient, generation: int) -> None:
        """Connect once and dispatch frames until the stream ends."""
        logger.debug("Connecting to event stream at %s", self.url)
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        async with client.stream("GET", self.url, headers=headers) as response:
            if response.status_code != 200:
                raise TransportError(f"Unexpected status {response.status_code}", status_code=response.status_code)

            self._reconnect_delay = RECONNECT_INITIAL_DELAY_S
            self._set_state(StreamState.STREAMING)
            logger.info("Event stream connected: %s", self.url)

            parser = FrameParser()
            async for chunk in response.aiter_text():
                for frame in parser.feed(chunk):
                    self._handle_frame(frame)
                    if not self._is_current(generation):
                        return


def _current_task() -> Optional[asyncio.Task[object]]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
