import asyncio
import logging
from typing import Any, Dict, Optional

from restaurant.domain.enums import EventKind
from restaurant.interfaces.INotifier import INotifier

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Decouples notification delivery from the request that caused it.

    `emit` only enqueues, so a committed state change is never held up or
    rolled back by the notifier. A single background task delivers events in
    order; a failing delivery is logged and the loop moves on.
    """

    def __init__(self, notifier: INotifier):
        self.notifier = notifier
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="notification-dispatcher")

    def emit(self, event_kind: EventKind, order_snapshot: Dict[str, Any]) -> None:
        self._queue.put_nowait((event_kind, order_snapshot))

    async def drain(self) -> None:
        """Wait until every emitted event has been handed to the notifier."""
        await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ Dropping {self._queue.qsize()} undelivered notification(s) on shutdown")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            event_kind, snapshot = await self._queue.get()
            try:
                await self.notifier.notify(event_kind, snapshot)
            except Exception as e:
                logger.error(f"❌ Notification '{event_kind.value}' for order #{snapshot.get('id')} failed: {e}")
            finally:
                self._queue.task_done()
