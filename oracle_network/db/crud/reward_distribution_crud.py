"""Reward distribution queries."""

from typing import List

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..models.reward_distributions import (
    RewardDistribution,
    RewardDistributionCreate,
    RewardDistributionUpdate,
)
from .base_crud import BaseCrud


class RewardDistributionCrud(
    BaseCrud[RewardDistribution, RewardDistributionCreate, RewardDistributionUpdate]
):
    """Per oracle reward history."""

    async def get_by_oracle(
        self, oracle_id: str, db_session: AsyncSession
    ) -> List[RewardDistribution]:
        """Rewards paid to an oracle, by asset and round."""
        query = (
            select(RewardDistribution)
            .where(RewardDistribution.oracle_id == oracle_id)
            .order_by(RewardDistribution.asset, RewardDistribution.round_id)
        )
        result = await db_session.execute(query)
        return result.scalars().all()

    async def total_paid(self, oracle_id: str, db_session: AsyncSession) -> int:
        """Sum of rewards paid to an oracle, zero when none."""
        query = select(func.coalesce(func.sum(RewardDistribution.amount), 0)).where(
            RewardDistribution.oracle_id == oracle_id
        )
        result = await db_session.execute(query)
        return int(result.scalar_one())


reward_distribution_crud = RewardDistributionCrud(RewardDistribution)
