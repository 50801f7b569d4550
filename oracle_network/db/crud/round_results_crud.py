"""Round result CRUD Operations"""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..models.round_results import RoundResult, RoundResultCreate, RoundResultUpdate
from .base_crud import BaseCrud


class RoundResultCrud(BaseCrud[RoundResult, RoundResultCreate, RoundResultUpdate]):
    """Round result CRUD operations."""

    async def get_by_asset(
        self, asset: str, db_session: AsyncSession
    ) -> List[RoundResult]:
        """Round results of an asset in round order."""
        query = (
            select(RoundResult)
            .where(RoundResult.asset == asset)
            .order_by(RoundResult.round_id)
        )
        result = await db_session.execute(query)
        return result.scalars().all()


round_result_crud = RoundResultCrud(RoundResult)
