"""Record store port: role lookup plus single-row inserts into the role and profile tables."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sims.auth.models import UserRole
from sims.core.exceptions import StoreError
from sims.core.models import Guardian, Student, Teacher

TABLE_MODELS = {
    "user_roles": UserRole,
    "guru": Teacher,
    "siswa": Student,
    "orang_tua": Guardian,
}


class RecordStore(ABC):
    @abstractmethod
    async def get_user_role(self, user_id: UUID) -> Optional[str]:
        """Role of the account, or None when it has no (or more than one) assignment."""

    @abstractmethod
    async def insert(self, table: str, values: Dict[str, Any]) -> None:
        """Insert one row. Raises StoreError with the store's message."""


def _db_error_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class DatabaseRecordStore(RecordStore):
    """Each insert commits on its own; a failed insert rolls back only itself."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user_role(self, user_id: UUID) -> Optional[str]:
        result = await self.db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        roles = result.scalars().all()
        if len(roles) != 1:
            return None
        return roles[0]

    async def insert(self, table: str, values: Dict[str, Any]) -> None:
        model = TABLE_MODELS.get(table)
        if model is None:
            raise StoreError(f'relation "{table}" does not exist')
        try:
            row = model(**values)
        except TypeError as e:
            raise StoreError(str(e)) from e
        try:
            self.db.add(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(_db_error_message(e)) from e
