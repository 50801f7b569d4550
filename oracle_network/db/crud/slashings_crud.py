"""Slashing CRUD operations."""

from ..models.slashings import Slashing, SlashingCreate, SlashingUpdate
from .base_crud import BaseCrud


class SlashingCrud(BaseCrud[Slashing, SlashingCreate, SlashingUpdate]):
    """Slashing CRUD operations."""

    pass  # pylint: disable=unnecessary-pass


slashing_crud = SlashingCrud(Slashing)
