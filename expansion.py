"""
Expanded-item state for the learning view.

At most one catalog entry is expanded. Expanding an entry shows a
"fetching detail" state for a fixed delay before its content is shown; the
content is already in memory, so the delay is simulated latency only.
"""

import asyncio
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

ItemId = Union[int, str]

DEFAULT_DELAY = 0.8


class DetailExpansion:
    def __init__(self, delay: float = DEFAULT_DELAY):
        self.delay = delay
        self.expanded_id: Optional[ItemId] = None
        self.fetching = False
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None

    def toggle(self, item_id: ItemId) -> None:
        """Collapse ``item_id`` if it is expanded, otherwise expand it. Needs a running loop."""
        self._cancel_pending()
        if self.expanded_id == item_id:
            self.expanded_id = None
            self.fetching = False
            return

        self.expanded_id = item_id
        self.fetching = True
        self._pending = asyncio.get_running_loop().create_task(
            self._finish_fetch(item_id, self._generation)
        )

    def is_loaded(self, item_id: ItemId) -> bool:
        return self.expanded_id == item_id and not self.fetching

    async def wait(self) -> None:
        """
        Wait for the pending detail fetch, if any.

        Cancelling the waiter leaves the fetch running; only a retarget or
        close() cancels it.
        """
        task = self._pending
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def close(self) -> None:
        """Drop any pending completion, e.g. when the view goes away."""
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _finish_fetch(self, item_id: ItemId, generation: int) -> None:
        await asyncio.sleep(self.delay)
        if generation != self._generation or self.expanded_id != item_id:
            logger.debug("Ignoring superseded detail fetch for %r", item_id)
            return
        self.fetching = False
