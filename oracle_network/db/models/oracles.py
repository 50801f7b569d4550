"""Model for the oracles table."""

from decimal import Decimal
from sqlmodel import Field, SQLModel
from .base import BaseUUIDModel


class OracleRecordBase(SQLModel):
    """Base model for all oracle attributes."""

    oracle_id: str = Field(index=True, unique=True)
    owner: str
    endpoint: str
    commission: Decimal = Field(max_digits=20, decimal_places=18)
    status: str
    stake: int
    registered_at: int


class OracleRecord(OracleRecordBase, BaseUUIDModel, table=True):
    """Oracle model representing a registered reporter."""

    __tablename__ = "oracle"


class OracleRecordCreate(OracleRecordBase):
    """Model for creating a new oracle."""

    pass  # pylint: disable=unnecessary-pass


class OracleRecordUpdate(SQLModel):
    """Model for updating an existing oracle."""

    status: str
