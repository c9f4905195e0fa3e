"""At-most-once fetching of an order's return requests.

Order pages can ask for the same order's return requests many times in a
burst. The guard keeps one state machine per order id and lets exactly one
fetch through; every other caller awaits that fetch's result.

Settled results are held until ``reset``, so a guard belongs to one page or
view. Create a new one per view, or call ``reset()`` when the view goes away.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from evarae.config import get_settings
from evarae.services.returns import ReturnSnapshot

logger = logging.getLogger(__name__)

Fetcher = Callable[[Any], Awaitable[List[ReturnSnapshot]]]


class FetchState(str, Enum):
    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    # Settled with an error; stays guarded until reset()
    FAILED = "failed"


def _retrieve_exception(task: asyncio.Task) -> None:
    # Marks the error as retrieved even when every waiter was cancelled; _run logs it
    if not task.cancelled():
        task.exception()


class ReturnRequestFetchGuard:
    def __init__(self, fetch: Fetcher, debounce: Optional[float] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self._fetch = fetch
        self._debounce = settings.RETURN_FETCH_DEBOUNCE_MS / 1000 if debounce is None else debounce
        self._timeout = settings.RETURN_FETCH_TIMEOUT_SECONDS if timeout is None else timeout
        self._tasks: Dict[Any, asyncio.Task] = {}
        self._states: Dict[Any, FetchState] = {}

    def state(self, order_id: Any) -> FetchState:
        return self._states.get(order_id, FetchState.NOT_STARTED)

    async def trigger(self, order_id: Any) -> List[ReturnSnapshot]:
        """Fetch once per order id and share the result with every caller.

        A failed fetch re-raises its error to later callers too, until
        ``reset`` is called for that id.
        """
        task = self._tasks.get(order_id)
        if task is None:
            # No await between the lookup and this assignment, so concurrent
            # triggers for one id always see the same task.
            self._states[order_id] = FetchState.IN_FLIGHT
            task = asyncio.ensure_future(self._run(order_id))
            task.add_done_callback(_retrieve_exception)
            self._tasks[order_id] = task
            logger.debug("Scheduled return request fetch for order %s", order_id)
        return await asyncio.shield(task)

    def reset(self, order_id: Any = None) -> None:
        """Forget one order id, or all of them when called without one.

        A fetch still running for a forgotten id finishes on its own; its
        result is not recorded.
        """
        if order_id is None:
            self._tasks.clear()
            self._states.clear()
            return
        self._tasks.pop(order_id, None)
        self._states.pop(order_id, None)

    async def _run(self, order_id: Any) -> List[ReturnSnapshot]:
        if self._debounce > 0:
            await asyncio.sleep(self._debounce)
        try:
            result = await asyncio.wait_for(self._fetch(order_id), timeout=self._timeout)
        except Exception as e:
            logger.warning("Return request fetch failed for order %s: %r", order_id, e)
            self._settle(order_id, FetchState.FAILED)
            raise
        self._settle(order_id, FetchState.DONE)
        return result

    def _settle(self, order_id: Any, state: FetchState) -> None:
        # Ignore results from a fetch that was reset while in flight
        if self._tasks.get(order_id) is asyncio.current_task():
            self._states[order_id] = state
