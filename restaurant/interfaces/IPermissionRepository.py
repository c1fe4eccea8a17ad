from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from restaurant.domain.models import Permission


class IPermissionRepository(ABC):
    @abstractmethod
    async def get_permission(self, role: str, resource: str, action: str) -> Optional[Permission]:
        pass

    @abstractmethod
    async def upsert_permissions(self, entries: List[Dict]) -> None:
        pass

    @abstractmethod
    async def list_permissions(self, role: Optional[str] = None) -> List[Permission]:
        pass

    @abstractmethod
    async def insert_missing(self, entries: List[Dict]) -> int:
        """Insert entries whose key is absent. Existing rows are left untouched."""
        pass
