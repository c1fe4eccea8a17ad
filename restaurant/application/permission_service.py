import logging
from typing import Dict, List, Optional

from restaurant.domain.models import Permission
from restaurant.domain.permissions import DEFAULT_PERMISSIONS
from restaurant.infrastructure.permission_cache import PermissionCache
from restaurant.interfaces.IPermissionRepository import IPermissionRepository

logger = logging.getLogger(__name__)


class PermissionService:
    """Answers "may {role} {action} {resource}?" from the store, through the cache."""

    def __init__(self, repo: IPermissionRepository, cache: PermissionCache):
        self.repo = repo
        self.cache = cache

    async def is_allowed(self, role: str, resource: str, action: str) -> bool:
        cached = await self.cache.get(role, resource, action)
        if cached is not None:
            return cached

        generation = self.cache.generation
        try:
            permission = await self.repo.get_permission(role, resource, action)
        except Exception as e:
            # Fail closed and do not cache: the next call retries the store
            logger.error(f"❌ Permission lookup failed for {role}:{resource}:{action}: {e}")
            return False

        allowed = bool(permission and permission.allowed)
        # a concurrent set_permissions may have cleared the cache since the read
        await self.cache.set(role, resource, action, allowed, generation=generation)
        return allowed

    async def set_permissions(self, entries: List[Dict]) -> None:
        await self.repo.upsert_permissions(entries)
        await self.cache.clear()
        logger.info(f"✅ {len(entries)} permission(s) updated, cache cleared")

    async def list_permissions(self, role: Optional[str] = None) -> List[Permission]:
        return await self.repo.list_permissions(role)

    async def seed_defaults(self) -> int:
        inserted = await self.repo.insert_missing(DEFAULT_PERMISSIONS)
        if inserted:
            await self.cache.clear()
        logger.info(f"✅ Default permissions seeded ({inserted} new)")
        return inserted
