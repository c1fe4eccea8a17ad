import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from restaurant.application.notification_dispatcher import NotificationDispatcher
from restaurant.application.order_state_machine import OrderStateMachine
from restaurant.domain.enums import EventKind, OrderStatus
from restaurant.domain.schemas import order_snapshot
from restaurant.infrastructure.database import utcnow
from restaurant.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)


class AutoExpirySweeper:
    """
    Promotes `preparing` orders to `ready` once their estimated ready time has passed.

    System-initiated: no authorization gate, no staff change. One order failing
    does not stop the rest of the batch, and a failing tick does not stop the loop.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        state_machine: OrderStateMachine,
        dispatcher: NotificationDispatcher,
        interval: float = 30,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.order_repo = order_repo
        self.state_machine = state_machine
        self.dispatcher = dispatcher
        self.interval = interval
        self.clock = clock
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    async def sweep_once(self) -> int:
        """Run one sweep. Returns the number of orders promoted."""
        overdue = await self.order_repo.find_orders_by_status(OrderStatus.PREPARING.value, before=self.clock())
        promoted = 0
        for order in overdue:
            try:
                transition = self.state_machine.plan(order, OrderStatus.READY)
                updated = await self.order_repo.update_order(order.id, transition.patch, transition.guards)
                if updated is None:
                    # moved on by staff between the read and the write
                    logger.info(f"Order #{order.id} changed before auto-ready, skipping")
                    continue
                promoted += 1
                logger.info(f"⏱️ Order #{order.id} automatically updated to 'ready'")
                self.dispatcher.emit(EventKind.STATUS_CHANGED, order_snapshot(updated))
            except Exception as e:
                logger.error(f"❌ Auto-ready failed for order #{order.id}: {e}")
        return promoted

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self._run(), name="auto-expiry-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        # let an in-flight sweep finish its batch
        self._stop_event.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        logger.info(f"✅ Auto-expiry sweeper running every {self.interval}s")
        while not self._stop_event.is_set():
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"❌ Error in auto-update ready status: {e}")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
