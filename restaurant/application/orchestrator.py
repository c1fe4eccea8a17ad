import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from restaurant.application.authorization import AuthorizationGate
from restaurant.application.notification_dispatcher import NotificationDispatcher
from restaurant.application.order_state_machine import OrderStateMachine, Transition
from restaurant.application.permission_service import PermissionService
from restaurant.core.errors import Conflict, DenialReason, Forbidden, InvalidRequest, NotFound
from restaurant.domain import permissions as perm
from restaurant.domain.caller import Caller
from restaurant.domain.enums import DELETABLE_STATUSES, EventKind, OrderStatus, Role
from restaurant.domain.models import Order, Permission, Review
from restaurant.domain.schemas import OrderCreate, order_snapshot
from restaurant.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)


class Orchestrator:
    """Entry point for every order, review and permission operation."""

    def __init__(
        self,
        order_repo: IOrderRepository,
        permission_service: PermissionService,
        gate: AuthorizationGate,
        state_machine: OrderStateMachine,
        dispatcher: NotificationDispatcher,
    ):
        self.order_repo = order_repo
        self.permission_service = permission_service
        self.gate = gate
        self.state_machine = state_machine
        self.dispatcher = dispatcher

    # --- Placement & reads ---

    async def place_order(self, payload: OrderCreate, caller: Optional[Caller] = None) -> Order:
        if caller is not None:
            await self.gate.require(caller, perm.ORDERS, perm.CREATE)

        customer = payload.customer
        order = await self.order_repo.create_order({
            "status": OrderStatus.PENDING.value,
            "items": [item.model_dump() for item in payload.items],
            "total": Decimal(str(payload.total)).quantize(Decimal("0.01")),
            "customer_name": customer.name,
            "customer_email": str(customer.email),
            "customer_phone": customer.phone,
            "customer_address": customer.address,
            "user_id": caller.user_id if caller else None,
        })
        placed_by = f"user #{caller.user_id}" if caller else "guest"
        logger.info(f"✅ Order #{order.id} placed by {placed_by}")

        snapshot = order_snapshot(order)
        self.dispatcher.emit(EventKind.CONFIRMED, snapshot)
        self.dispatcher.emit(EventKind.ADMIN_ALERT, snapshot)
        return order

    async def get_order(self, caller: Caller, order_id: int) -> Order:
        await self.gate.require(caller, perm.ORDERS, perm.VIEW)
        order = await self._get_or_404(order_id)
        if caller.role == Role.CUSTOMER:
            self.gate.require_ownership(caller, order)
            if order.is_deleted_by_customer:
                raise NotFound(f"Order #{order_id} not found")
        return order

    async def list_orders(
        self,
        caller: Caller,
        page: int = 1,
        limit: int = 10,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        sort_by: str = "date",
        sort_order: str = "desc",
    ) -> Tuple[List[Order], int]:
        await self.gate.require(caller, perm.ORDERS, perm.VIEW)
        # customers only ever see their own, visible orders
        own_only = caller.role == Role.CUSTOMER
        return await self.order_repo.list_orders(
            page=page,
            limit=limit,
            status=status.value if status else None,
            user_id=caller.user_id if own_only else None,
            include_hidden=not own_only,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    async def list_my_orders(
        self, caller: Caller, page: int = 1, limit: int = 10, sort_by: str = "date", sort_order: str = "desc"
    ) -> Tuple[List[Order], int]:
        return await self.order_repo.list_orders(
            page=page,
            limit=limit,
            user_id=caller.user_id,
            include_hidden=False,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    # --- Lifecycle ---

    async def update_status(
        self, caller: Caller, order_id: int, target: OrderStatus, estimated_time: Optional[int] = None
    ) -> Order:
        await self.gate.require(caller, perm.ORDERS, perm.UPDATE)
        order = await self._get_or_404(order_id)
        self.gate.require_status_change(caller, order, target)

        transition = self.state_machine.plan(order, target, actor=caller, estimated_time=estimated_time)
        updated = await self._commit(transition)
        logger.info(f"✅ Order #{order_id}: {transition.current.value} -> {target.value} by user #{caller.user_id}")
        return updated

    async def cancel_order(self, caller: Caller, order_id: int) -> Order:
        """Customer-side cancellation. Staff cancel through update_status."""
        await self.gate.require(caller, perm.ORDERS, perm.CANCEL)
        order = await self._get_or_404(order_id)
        self.gate.require_ownership(caller, order)

        transition = self.state_machine.plan(order, OrderStatus.CANCELLED, actor=caller, customer_initiated=True)
        updated = await self._commit(transition)
        logger.info(f"✅ Order #{order_id} cancelled by its owner (user #{caller.user_id})")
        return updated

    async def hide_from_customer(self, caller: Caller, order_id: int) -> Order:
        """Soft delete: the order disappears from its owner's views only."""
        await self.gate.require(caller, perm.ORDERS, perm.HIDE)
        order = await self._get_or_404(order_id)
        self.gate.require_ownership(caller, order)
        self._require_deletable(order)

        updated = await self.order_repo.update_order(
            order_id, {"is_deleted_by_customer": True}, guards={"status": order.status}
        )
        if updated is None:
            raise await self._stale(order_id, requested="hidden")
        logger.info(f"🗑️ Order #{order_id} hidden from customer view")
        return updated

    async def purge_order(self, caller: Caller, order_id: int) -> None:
        """Hard delete, admins only."""
        await self.gate.require(caller, perm.ORDERS, perm.DELETE)
        if not caller.is_admin:
            logger.warning(f"⛔ Denied user #{caller.user_id} ({caller.role.value}): purge requires ADMIN")
            raise Forbidden(DenialReason.ROLE, "Only admins can permanently delete orders")
        order = await self._get_or_404(order_id)
        self._require_deletable(order)

        await self.order_repo.delete_order(order_id)
        logger.info(f"🗑️ Order #{order_id} deleted by admin #{caller.user_id}")

    # --- Reviews ---

    async def create_review(self, caller: Caller, order_id: int, rating: int, comment: Optional[str] = None) -> Review:
        if not 1 <= rating <= 5:
            raise InvalidRequest("rating must be between 1 and 5")
        await self.gate.require(caller, perm.REVIEWS, perm.CREATE)
        order = await self._get_or_404(order_id)
        self.gate.require_ownership(caller, order)

        if order.status != OrderStatus.DELIVERED.value:
            raise Conflict("Only delivered orders can be reviewed", current=order.status)
        if order.review is not None:
            raise Conflict(f"Order #{order_id} already has a review")

        review = await self.order_repo.create_review(order_id, caller.user_id, rating, comment)
        logger.info(f"⭐ Review #{review.id} ({rating}/5) submitted for order #{order_id}")
        return review

    async def accept_review(self, caller: Caller, review_id: int, menu_item_ids: List[int]) -> Review:
        # moderation rides on order visibility
        await self.gate.require(caller, perm.ORDERS, perm.VIEW)
        self.gate.require_staff(caller)
        # tags replace the previous set
        tags = sorted(set(menu_item_ids))
        review = await self.order_repo.update_review(review_id, {"is_accepted": True, "tagged_menu_item_ids": tags})
        if review is None:
            raise NotFound(f"Review #{review_id} not found")
        logger.info(f"✅ Review #{review_id} accepted, tagged items {tags}")
        return review

    # --- Permissions ---

    async def list_permissions(self, caller: Caller, role: Optional[Role] = None) -> List[Permission]:
        await self.gate.require(caller, perm.PERMISSIONS, perm.VIEW)
        return await self.permission_service.list_permissions(role.value if role else None)

    async def set_permissions(self, caller: Caller, entries: List[Dict]) -> None:
        await self.gate.require(caller, perm.PERMISSIONS, perm.UPDATE)
        await self.permission_service.set_permissions(entries)

    # --- Helpers ---

    async def _get_or_404(self, order_id: int) -> Order:
        order = await self.order_repo.get_order(order_id)
        if order is None:
            raise NotFound(f"Order #{order_id} not found")
        return order

    async def _commit(self, transition: Transition) -> Order:
        updated = await self.order_repo.update_order(transition.order_id, transition.patch, transition.guards)
        if updated is None:
            raise await self._stale(transition.order_id, requested=transition.target.value)
        self.dispatcher.emit(EventKind.STATUS_CHANGED, order_snapshot(updated))
        return updated

    async def _stale(self, order_id: int, requested: str) -> Exception:
        """The guarded write matched nothing: report what the order looks like now."""
        latest = await self.order_repo.get_order(order_id)
        if latest is None:
            return NotFound(f"Order #{order_id} not found")
        return Conflict(
            f"Order #{order_id} was changed by someone else, refresh and try again",
            current=latest.status,
            requested=requested,
        )

    @staticmethod
    def _require_deletable(order: Order) -> None:
        if OrderStatus(order.status) not in DELETABLE_STATUSES:
            raise Conflict("This order cannot be deleted in its current status", current=order.status)
