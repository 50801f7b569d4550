"""Network event CRUD operations."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, select

from ..models.network_events import (
    NetworkEvent,
    NetworkEventCreate,
    NetworkEventUpdate,
)
from .base_crud import BaseCrud


class NetworkEventCrud(BaseCrud[NetworkEvent, NetworkEventCreate, NetworkEventUpdate]):
    """Network event CRUD operations."""

    async def get_last_seq(
        self, db_session: AsyncSession, run_id: Optional[UUID] = None
    ) -> int:
        """Highest stored sequence number, of one run when given. 0 when empty."""
        query = select(func.max(NetworkEvent.seq))  # pylint: disable=not-callable
        if run_id is not None:
            query = query.where(NetworkEvent.run_id == run_id)
        result = await db_session.execute(query)
        return result.scalar_one_or_none() or 0

    async def get_by_name(
        self, name: str, db_session: AsyncSession
    ) -> List[NetworkEvent]:
        """Events with the given name in sequence order."""
        query = select(NetworkEvent).where(NetworkEvent.name == name).order_by(NetworkEvent.seq)
        result = await db_session.execute(query)
        return result.scalars().all()


network_event_crud = NetworkEventCrud(NetworkEvent)
