"""Operational errors CRUD."""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..models.operational_errors import (
    OperationalError,
    OperationalErrorCreate,
    OperationalErrorUpdate,
)
from .base_crud import BaseCrud


class OperationalErrorsCrud(
    BaseCrud[OperationalError, OperationalErrorCreate, OperationalErrorUpdate]
):
    """Queries over rejected operations."""

    async def get_by_kind(
        self, kind: str, db_session: AsyncSession, asset: Optional[str] = None
    ) -> List[OperationalError]:
        """Errors of one kind, optionally for a single asset, oldest first."""
        query = select(OperationalError).where(OperationalError.kind == kind)
        if asset is not None:
            query = query.where(OperationalError.asset == asset)
        result = await db_session.execute(query.order_by(OperationalError.id))
        return result.scalars().all()


operational_errors_crud = OperationalErrorsCrud(OperationalError)
