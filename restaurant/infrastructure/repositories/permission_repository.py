import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from restaurant.core.errors import DependencyFailure
from restaurant.domain.models import Permission
from restaurant.infrastructure.database import SessionLocal
from restaurant.interfaces.IPermissionRepository import IPermissionRepository

logger = logging.getLogger(__name__)


def _key_filter(role: str, resource: str, action: str):
    return (Permission.role == role, Permission.resource == resource, Permission.action == action)


class PostgresPermissionRepository(IPermissionRepository):

    def __init__(self, session_factory: async_sessionmaker = SessionLocal):
        self.session_factory = session_factory

    async def get_permission(self, role: str, resource: str, action: str) -> Optional[Permission]:
        # Errors propagate: the permission service decides how to fail (closed)
        async with self.session_factory() as session:
            return await session.scalar(select(Permission).where(*_key_filter(role, resource, action)))

    async def upsert_permissions(self, entries: List[Dict]) -> None:
        """All entries are written in one transaction; any failure leaves the table untouched."""
        async with self.session_factory() as session:
            try:
                for entry in entries:
                    existing = await session.scalar(
                        select(Permission).where(*_key_filter(entry["role"], entry["resource"], entry["action"]))
                    )
                    if existing:
                        existing.allowed = entry["allowed"]
                    else:
                        session.add(Permission(**entry))
                await session.commit()
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while updating permissions: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to update permissions") from e

    async def list_permissions(self, role: Optional[str] = None) -> List[Permission]:
        stmt = select(Permission).order_by(Permission.role, Permission.resource, Permission.action)
        if role:
            stmt = stmt.where(Permission.role == role)
        async with self.session_factory() as session:
            try:
                result = await session.scalars(stmt)
                return list(result.all())
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Read Error (permissions): {e}")
                raise DependencyFailure("Failed to fetch permissions") from e

    async def insert_missing(self, entries: List[Dict]) -> int:
        inserted = 0
        async with self.session_factory() as session:
            try:
                for entry in entries:
                    existing = await session.scalar(
                        select(Permission.id).where(*_key_filter(entry["role"], entry["resource"], entry["action"]))
                    )
                    if existing is None:
                        session.add(Permission(**entry))
                        inserted += 1
                await session.commit()
                return inserted
            except SQLAlchemyError as e:
                logger.error(f"❌ DB Error while seeding permissions: {e}")
                await session.rollback()
                raise DependencyFailure("Failed to seed permissions") from e
