from typing import Awaitable, List, Optional, Set
import asyncio
import inspect
import logging

from ..models import ProgressEvent
from ..protocols import ProgressSink

logger = logging.getLogger(__name__)


class ProgressEmitter:
    """
    Fire-and-forget delivery of progress events.

    Each sink is called inline. When the call returns an awaitable (an
    ``async def`` function or an object with ``async def __call__``) it is
    scheduled as a task so a slow sink never holds up the pipeline.
    Listener errors are logged.
    """

    def __init__(self, sinks: Optional[List[ProgressSink]] = None):
        self._sinks: List[ProgressSink] = []
        self._pending: Set[asyncio.Task] = set()
        for sink in sinks or []:
            self.subscribe(sink)

    def subscribe(self, sink: ProgressSink):
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: ProgressSink):
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(self, event: ProgressEvent) -> None:
        for sink in self._sinks[:]:
            try:
                result = sink(event)
                if inspect.isawaitable(result):
                    task = asyncio.get_running_loop().create_task(self._deliver(result, event))
                    self._pending.add(task)
                    task.add_done_callback(self._pending.discard)
            except Exception as e:
                logger.error("Error in progress sink for %s event: %s", event.status.value, e)

    async def _deliver(self, delivery: Awaitable[None], event: ProgressEvent) -> None:
        try:
            await delivery
        except Exception as e:
            logger.error("Error in progress sink for %s event: %s", event.status.value, e)

    async def flush(self, timeout: float = 1.0) -> None:
        """Give pending async deliveries a bounded grace period, then drop them."""
        if not self._pending:
            return
        pending = list(self._pending)
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            logger.debug("Dropping %d undelivered progress event(s)", len(not_done))
            for task in not_done:
                task.cancel()
            await asyncio.gather(*not_done, return_exceptions=True)
