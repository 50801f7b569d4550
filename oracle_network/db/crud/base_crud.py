"""Generic CRUD shared by the network tables."""

from typing import Any, Generic, List, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, func, select

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=SQLModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=SQLModel)


class BaseCrud(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Create, read and update for one table model.

    Writes take ``commit``: when False the row is only flushed, so the event
    service can store a whole batch in the caller's transaction.
    """

    def __init__(self, model: ModelType):
        self.model = model

    async def get_count(self, db_session: AsyncSession, *criteria) -> int:
        """Number of rows matching the optional where criteria."""
        query = select(func.count()).select_from(self.model)  # pylint: disable=not-callable
        for criterion in criteria:
            query = query.where(criterion)
        result = await db_session.execute(query)
        return result.scalar_one()

    async def get_multi(
        self, *, skip: int = 0, limit: int = 100, db_session: AsyncSession
    ) -> List[ModelType]:
        """Rows in insertion order, uuid7 ids being time ordered."""
        query = select(self.model).order_by(self.model.id).offset(skip).limit(limit)
        result = await db_session.execute(query)
        return result.scalars().all()

    async def create(
        self,
        *,
        obj_in: CreateSchemaType,
        db_session: AsyncSession,
        commit: bool = True,
    ) -> ModelType:
        """Insert a row built from the create schema."""
        db_obj = self.model.model_validate(obj_in)
        return await self._persist(db_obj, db_session, commit)

    async def update(
        self,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | dict[str, Any],
        db_session: AsyncSession,
        commit: bool = True,
    ) -> ModelType:
        """Apply the set fields of obj_in to an existing row."""
        if isinstance(obj_in, dict):
            changes = obj_in
        else:
            changes = obj_in.model_dump(exclude_unset=True)
        columns = type(db_obj).model_fields
        for field, value in changes.items():
            if field in columns:
                setattr(db_obj, field, value)
        return await self._persist(db_obj, db_session, commit)

    async def _persist(
        self, db_obj: ModelType, db_session: AsyncSession, commit: bool
    ) -> ModelType:
        db_session.add(db_obj)
        try:
            if commit:
                await db_session.commit()
                await db_session.refresh(db_obj)
            else:
                await db_session.flush()
        except IntegrityError:
            await db_session.rollback()
            raise
        return db_obj
