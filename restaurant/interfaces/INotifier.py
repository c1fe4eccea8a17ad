from abc import ABC, abstractmethod
from typing import Any, Dict

from restaurant.domain.enums import EventKind


class INotifier(ABC):
    @abstractmethod
    async def notify(self, event_kind: EventKind, order_snapshot: Dict[str, Any]) -> None:
        pass
