"""Unit tests for SessionTreeCache."""

import pytest

from tmuxdeck.core.session_tree import SessionTreeCache


@pytest.fixture
def listed(fake_connections):
    fake_connections.ok("list-sessions", "$0:main:1:0")
    fake_connections.ok("list-windows", "@0:0:shell:1")
    fake_connections.ok("list-panes", "%0:0:1:/home/u:zsh:80:24")
    return fake_connections


@pytest.mark.asyncio
async def test_get_builds_tree_once(tmux_service, listed):
    cache = SessionTreeCache(tmux_service)

    first = await cache.get("local")
    second = await cache.get("local")

    assert first is second
    assert first[0].windows[0].panes[0].id == "%0"
    assert sum("list-sessions" in c for c in listed.commands) == 1


@pytest.mark.asyncio
async def test_refresh_forces_new_listing(tmux_service, listed):
    cache = SessionTreeCache(tmux_service)
    await cache.get("local")

    cache.refresh("local")
    await cache.get("local")

    assert sum("list-sessions" in c for c in listed.commands) == 2


@pytest.mark.asyncio
async def test_refresh_all_drops_every_connection(tmux_service, listed):
    cache = SessionTreeCache(tmux_service)
    await cache.get("local")
    await cache.get("remote")

    cache.refresh()
    await cache.get("remote")

    assert [conn for conn, c in listed.calls if "list-sessions" in c] == ["local", "remote", "remote"]


@pytest.mark.asyncio
async def test_empty_tree_is_cached(tmux_service, fake_connections):
    fake_connections.fail("list-sessions", stderr="no server running")
    cache = SessionTreeCache(tmux_service)

    assert await cache.get("local") == []
    assert await cache.get("local") == []
    assert len(fake_connections.commands) == 1
