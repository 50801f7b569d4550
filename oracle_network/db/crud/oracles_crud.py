"""Oracle CRUD Operations"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..models.oracles import OracleRecord, OracleRecordCreate, OracleRecordUpdate
from .base_crud import BaseCrud


class OracleCrud(BaseCrud[OracleRecord, OracleRecordCreate, OracleRecordUpdate]):
    """Oracle CRUD operations."""

    async def get_by_oracle_id(
        self, oracle_id: str, db_session: AsyncSession
    ) -> Optional[OracleRecord]:
        """Get a single oracle by its network id."""
        query = select(OracleRecord).where(OracleRecord.oracle_id == oracle_id)
        result = await db_session.execute(query)
        return result.scalar_one_or_none()


oracle_crud = OracleCrud(OracleRecord)
