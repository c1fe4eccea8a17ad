import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from restaurant.core.errors import Conflict, DependencyFailure
from restaurant.domain.models import Order, Review
from restaurant.infrastructure.database import SessionLocal
from restaurant.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "date": Order.created_at,
    "total": Order.total,
    "status": Order.status,
    "id": Order.id,
}


class PostgresOrderRepository(IOrderRepository):

    def __init__(self, session_factory: async_sessionmaker = SessionLocal):
        self.session_factory = session_factory

    async def create_order(self, data: Dict[str, Any]) -> Order:
        async with self.session_factory() as session:
            try:
                new_order = Order(**data)
                session.add(new_order)
                await session.commit()
                # reload so the (empty) review relationship is populated
                return await session.get(Order, new_order.id, populate_existing=True)
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while placing order: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to place order") from e

    async def get_order(self, order_id: int) -> Optional[Order]:
        async with self.session_factory() as session:
            try:
                return await session.get(Order, order_id)
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Read Error (order #{order_id}): {e}")
                raise DependencyFailure("Failed to fetch order") from e

    async def list_orders(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        user_id: Optional[int] = None,
        include_hidden: bool = True,
        search: Optional[str] = None,
        sort_by: str = "date",
        sort_order: str = "desc",
    ) -> Tuple[List[Order], int]:
        """
        Paginated order listing.
        Ordered by created_at DESC (Newest first) unless told otherwise.
        """
        conditions = []
        if status:
            conditions.append(Order.status == status)
        if user_id is not None:
            conditions.append(Order.user_id == user_id)
        if not include_hidden:
            conditions.append(Order.is_deleted_by_customer.is_(False))
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Order.customer_name.ilike(pattern), Order.customer_email.ilike(pattern)))

        column = SORT_COLUMNS.get(sort_by, Order.created_at)
        ordering = asc(column) if sort_order == "asc" else desc(column)

        async with self.session_factory() as session:
            try:
                total = await session.scalar(select(func.count()).select_from(Order).where(*conditions))
                result = await session.scalars(
                    select(Order)
                    .where(*conditions)
                    .order_by(ordering, desc(Order.id))
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
                return list(result.all()), total or 0
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Read Error: {e}")
                raise DependencyFailure("Failed to fetch orders") from e

    async def update_order(
        self, order_id: int, patch: Dict[str, Any], guards: Optional[Dict[str, Any]] = None
    ) -> Optional[Order]:
        stmt = update(Order).where(Order.id == order_id)
        for column, expected in (guards or {}).items():
            attr = getattr(Order, column)
            stmt = stmt.where(attr.is_(None) if expected is None else attr == expected)
        stmt = stmt.values(**patch)

        async with self.session_factory() as session:
            try:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    return None
                await session.commit()
                return await session.get(Order, order_id, populate_existing=True)
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while updating order #{order_id}: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to update order") from e

    async def delete_order(self, order_id: int) -> bool:
        async with self.session_factory() as session:
            try:
                order = await session.get(Order, order_id)
                if order is None:
                    return False
                await session.delete(order)
                await session.commit()
                return True
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while deleting order #{order_id}: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to delete order") from e

    async def find_orders_by_status(self, status: str, before: datetime) -> List[Order]:
        async with self.session_factory() as session:
            try:
                result = await session.scalars(
                    select(Order)
                    .where(
                        Order.status == status,
                        Order.estimated_ready_at.is_not(None),
                        Order.estimated_ready_at <= before,
                    )
                    .order_by(asc(Order.estimated_ready_at))
                )
                return list(result.all())
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Read Error (status={status}): {e}")
                raise DependencyFailure("Failed to fetch orders") from e

    # --- Reviews ---

    async def create_review(
        self, order_id: int, user_id: int, rating: int, comment: Optional[str]
    ) -> Review:
        async with self.session_factory() as session:
            try:
                review = Review(
                    order_id=order_id,
                    user_id=user_id,
                    rating=rating,
                    comment=comment,
                    is_accepted=False,
                    tagged_menu_item_ids=[],
                )
                session.add(review)
                await session.commit()
                return review
            except IntegrityError as e:
                await session.rollback()
                raise Conflict(f"Order #{order_id} already has a review") from e
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while saving review: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to submit review") from e

    async def update_review(self, review_id: int, patch: Dict[str, Any]) -> Optional[Review]:
        async with self.session_factory() as session:
            try:
                review = await session.get(Review, review_id)
                if review is None:
                    return None
                for key, value in patch.items():
                    setattr(review, key, value)
                await session.commit()
                return review
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while updating review #{review_id}: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to update review") from e
