"""Base models shared by the network tables."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import declared_attr
from sqlmodel import Field
from sqlmodel import SQLModel as _SQLModel
from uuid6 import uuid7


def utcnow() -> datetime:
    """Timezone aware current time."""
    return datetime.now(timezone.utc)


class SQLModel(_SQLModel):
    """Base model naming tables after their class."""

    @declared_attr
    def __tablename__(cls) -> str:  # pylint: disable=no-self-argument
        return cls.__name__.lower()


class BaseUUIDModel(SQLModel):
    """UUIDv7 primary key, so rows sort by insertion, plus timestamps."""

    id: UUID = Field(
        default_factory=uuid7,
        primary_key=True,
        index=True,
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column_kwargs={"onupdate": utcnow},
    )


class RoundScopedBase(SQLModel):
    """Columns of a record that belongs to one round of one asset."""

    run_id: Optional[UUID] = Field(default=None, nullable=True, index=True)
    asset: str = Field(index=True)
    round_id: int = Field(index=True)


class OracleRoundScopedBase(RoundScopedBase):
    """Round record attributed to a registered oracle."""

    oracle_id: str = Field(foreign_key="oracle.oracle_id", index=True)
