"""Unit tests for EventStreamClient."""

import asyncio

import httpx
import pytest

from tmuxdeck.core.event_stream import (
    EventStreamClient,
    EventType,
    FrameParser,
    StreamState,
    parse_event_name,
)

BASE_URL = "http://events.test"


class ScriptedBackend:
    """MockTransport handler replaying one response per request; the last repeats."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        return httpx.Response(status, text=body, headers={"content-type": "text/event-stream"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_client(backend: ScriptedBackend, stop_after: int, base_url: str = BASE_URL, on_sleep=None):
    """Client whose backoff sleep records delays and disposes after `stop_after` sleeps."""
    delays: list[float] = []
    client: EventStreamClient

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)
        if on_sleep is not None:
            on_sleep(client, len(delays))
        if len(delays) >= stop_after:
            client.dispose()

    client = EventStreamClient(base_url, transport=backend.transport, sleep=fake_sleep)
    return client, delays


async def run_until_disposed(client: EventStreamClient) -> None:
    client.start()

    async def _wait() -> None:
        while not client.disposed:
            await asyncio.sleep(0)
        await client.wait_closed()

    await asyncio.wait_for(_wait(), timeout=0.5)


@pytest.mark.asyncio
async def test_backoff_doubles_and_caps():
    backend = ScriptedBackend((500, ""))
    client, delays = make_client(backend, stop_after=6)

    await run_until_disposed(client)

    assert delays == [3.0, 6.0, 12.0, 24.0, 30.0, 30.0]
    assert client.state is StreamState.DISCONNECTED


@pytest.mark.asyncio
async def test_backoff_resets_after_streaming():
    backend = ScriptedBackend((500, ""), (500, ""), (200, ""), (500, ""))
    client, delays = make_client(backend, stop_after=4)

    await run_until_disposed(client)

    assert delays == [3.0, 6.0, 3.0, 6.0]


@pytest.mark.asyncio
async def test_connection_error_is_retried():
    attempts: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)
        if len(delays) == 2:
            client.dispose()

    client = EventStreamClient(BASE_URL, transport=httpx.MockTransport(handler), sleep=fake_sleep)
    await run_until_disposed(client)

    assert delays == [3.0, 6.0]
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_request_targets_events_path_with_stream_accept():
    backend = ScriptedBackend((500, ""))
    client, _ = make_client(backend, stop_after=1, base_url=f"{BASE_URL}/")

    await run_until_disposed(client)

    request = backend.requests[0]
    assert str(request.url) == f"{BASE_URL}/api/events"
    assert request.headers["accept"] == "text/event-stream"


@pytest.mark.asyncio
async def test_ticket_event_reaches_only_ticket_listeners():
    backend = ScriptedBackend((200, "event: ticket-updated\ndata: {}\n\n"))
    client, _ = make_client(backend, stop_after=1)
    ticket_calls: list[StreamState] = []
    spec_calls: list[StreamState] = []
    client.on(EventType.TICKET_UPDATED, lambda: ticket_calls.append(client.state))
    client.on(EventType.SPEC_UPDATED, lambda: spec_calls.append(client.state))

    await run_until_disposed(client)

    assert ticket_calls == [StreamState.STREAMING]
    assert spec_calls == []


@pytest.mark.asyncio
async def test_last_event_line_wins_and_unknown_events_are_ignored():
    body = (
        "event: spec-updated\nevent: knowledge-updated\ndata: x\n\n"
        "event: bogus-event\n\n"
        "data: no name\n\n"
        ": comment\n\n"
        "event: ticket-updated\n\n"
    )
    backend = ScriptedBackend((200, body))
    client, _ = make_client(backend, stop_after=1)
    seen: list[EventType] = []
    for event_type in EventType:
        client.on(event_type, lambda et=event_type: seen.append(et))

    await run_until_disposed(client)

    assert seen == [EventType.KNOWLEDGE_UPDATED, EventType.TICKET_UPDATED]


@pytest.mark.asyncio
async def test_same_listener_twice_is_delivered_once():
    backend = ScriptedBackend((200, "event: ticket-updated\n\n"))
    client, _ = make_client(backend, stop_after=1)
    calls: list[int] = []

    def listener() -> None:
        calls.append(1)

    client.on(EventType.TICKET_UPDATED, listener)
    client.on(EventType.TICKET_UPDATED, listener)
    await run_until_disposed(client)

    assert calls == [1]


@pytest.mark.asyncio
async def test_unsubscribed_listener_is_not_called():
    backend = ScriptedBackend((200, "event: ticket-updated\n\n"))
    client, _ = make_client(backend, stop_after=1)
    calls: list[int] = []
    subscription = client.on(EventType.TICKET_UPDATED, lambda: calls.append(1))

    subscription.unsubscribe()
    subscription.unsubscribe()
    await run_until_disposed(client)

    assert calls == []


@pytest.mark.asyncio
async def test_failing_listener_does_not_affect_others():
    backend = ScriptedBackend((200, "event: ticket-updated\n\nevent: ticket-updated\n\n"))
    client, delays = make_client(backend, stop_after=1)
    calls: list[int] = []

    def broken() -> None:
        raise RuntimeError("listener bug")

    client.on(EventType.TICKET_UPDATED, broken)
    client.on(EventType.TICKET_UPDATED, lambda: calls.append(1))
    await run_until_disposed(client)

    assert calls == [1, 1]
    # Stream ended normally, so the backoff starts from the reset value
    assert delays == [3.0]


@pytest.mark.asyncio
async def test_set_base_url_reconnects_with_reset_backoff():
    backend = ScriptedBackend((500, ""))
    new_url = "http://other.test"

    def switch(client: EventStreamClient, sleeps: int) -> None:
        if sleeps == 2:
            assert client.set_base_url(new_url) is True

    client, delays = make_client(backend, stop_after=3, on_sleep=switch)
    await run_until_disposed(client)

    assert delays == [3.0, 6.0, 3.0]
    assert client.base_url == new_url
    assert str(backend.requests[-1].url) == f"{new_url}/api/events"


@pytest.mark.asyncio
async def test_set_base_url_unchanged_is_noop():
    client = EventStreamClient(BASE_URL, transport=ScriptedBackend((500, "")).transport)

    assert client.set_base_url(f"{BASE_URL}/") is False
    assert client.state is StreamState.DISCONNECTED


@pytest.mark.asyncio
async def test_listener_can_dispose_client():
    backend = ScriptedBackend((200, "event: ticket-updated\n\nevent: ticket-updated\n\n"))
    client, delays = make_client(backend, stop_after=99)
    calls: list[int] = []

    def stop() -> None:
        calls.append(1)
        client.dispose()

    client.on(EventType.TICKET_UPDATED, stop)
    await run_until_disposed(client)

    assert calls == [1]
    assert delays == []


@pytest.mark.asyncio
async def test_dispose_clears_listeners_and_blocks_start():
    backend = ScriptedBackend((200, "event: ticket-updated\n\n"))
    client, _ = make_client(backend, stop_after=1)
    calls: list[int] = []
    client.on(EventType.TICKET_UPDATED, lambda: calls.append(1))

    await client.aclose()
    client.start()
    client.reconnect()
    await client.wait_closed()

    assert client.disposed is True
    assert client.state is StreamState.DISCONNECTED
    assert backend.requests == []
    assert calls == []


@pytest.mark.asyncio
async def test_aclose_cancels_live_stream():
    release = asyncio.Event()

    async def endless(request: httpx.Request) -> httpx.Response:
        async def body():
            yield b"event: ticket-updated\n\n"
            await release.wait()

        return httpx.Response(200, content=body())

    client = EventStreamClient(BASE_URL, transport=httpx.MockTransport(endless))
    seen = asyncio.Event()
    client.on(EventType.TICKET_UPDATED, seen.set)
    client.start()

    await asyncio.wait_for(seen.wait(), timeout=0.5)
    assert client.state is StreamState.STREAMING

    await asyncio.wait_for(client.aclose(), timeout=0.5)
    assert client.state is StreamState.DISCONNECTED


@pytest.mark.asyncio
async def test_aclose_waits_for_replaced_stream_to_close():
    release = asyncio.Event()
    opened: list[int] = []
    closed: list[int] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        attempt = len(opened)
        opened.append(attempt)

        async def body():
            try:
                yield b"event: ticket-updated\n\n"
                await release.wait()
            finally:
                # The first stream is slow to shut down
                if attempt == 0:
                    await asyncio.sleep(0.05)
                closed.append(attempt)

        return httpx.Response(200, content=body())

    client = EventStreamClient(BASE_URL, transport=httpx.MockTransport(handler))
    client.start()
    while len(opened) < 1 or client.state is not StreamState.STREAMING:
        await asyncio.sleep(0)

    client.reconnect()
    while len(opened) < 2:
        await asyncio.sleep(0)
    await asyncio.wait_for(client.aclose(), timeout=0.5)

    assert sorted(closed) == [0, 1]


def test_frame_parser_handles_split_chunks_and_crlf():
    parser = FrameParser()

    assert parser.feed("event: tick") == []
    assert parser.feed("et-updated\r") == []
    assert parser.feed("\n\r\nevent: spec-updated\r\n\r\n") == ["event: ticket-updated", "event: spec-updated"]

    parser.reset()
    assert parser.feed("\n\n") == [""]


def test_parse_event_name():
    assert parse_event_name("event: ticket-updated\ndata: 1") == "ticket-updated"
    assert parse_event_name("event:spec-updated") == "spec-updated"
    assert parse_event_name("data: only") is None
    assert parse_event_name("event: ") is None


def test_event_type_from_name():
    assert EventType.from_name("knowledge-updated") is EventType.KNOWLEDGE_UPDATED
    assert EventType.from_name("other") is None
