from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from restaurant.domain.models import Order, Review


class IOrderRepository(ABC):
    @abstractmethod
    async def create_order(self, data: Dict[str, Any]) -> Order:
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def update_order(
        self, order_id: int, patch: Dict[str, Any], guards: Optional[Dict[str, Any]] = None
    ) -> Optional[Order]:
        """Apply `patch` only if every column in `guards` still holds the given value.

        Returns the updated order, or None when no row matched.
        """
        pass

    @abstractmethod
    async def delete_order(self, order_id: int) -> bool:
        pass

    @abstractmethod
    async def find_orders_by_status(self, status: str, before: datetime) -> List[Order]:
        """Orders in `status` whose estimated_ready_at is at or before `before`."""
        pass

    @abstractmethod
    async def create_review(
        self, order_id: int, user_id: int, rating: int, comment: Optional[str]
    ) -> Review:
        pass

    @abstractmethod
    async def update_review(self, review_id: int, patch: Dict[str, Any]) -> Optional[Review]:
        pass
