"""Short-lived display cache for the session tree."""

from __future__ import annotations

import logging
from typing import Optional

from tmuxdeck.core.models import TmuxSession
from tmuxdeck.core.tmux_service import TmuxService

logger = logging.getLogger(__name__)


class SessionTreeCache:
    """Caches one full tree per connection until explicitly refreshed.

    No diffing: a refresh drops the entry and the next read rebuilds it from
    fresh listings.
    """

    def __init__(self, service: TmuxService) -> None:
        self.service = service
        self._trees: dict[str, list[TmuxSession]] = {}

    async def get(self, connection_id: str) -> list[TmuxSession]:
        cached = self._trees.get(connection_id)
        if cached is not None:
            return cached
        tree = await self.service.get_session_tree(connection_id)
        self._trees[connection_id] = tree
        logger.debug("Cached session tree for %s (%d sessions)", connection_id, len(tree))
        return tree

    def refresh(self, connection_id: Optional[str] = None) -> None:
        """Drop one connection's tree, or all of them."""
        if connection_id is None:
            self._trees.clear()
        else:
            self._trees.pop(connection_id, None)
