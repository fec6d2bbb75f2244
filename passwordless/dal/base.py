"""Repository base class and the shared clock."""

from datetime import UTC, datetime
from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


def utcnow() -> datetime:
    """Aware UTC "now" used for every issue and expiry timestamp."""
    return datetime.now(UTC)


class BaseRepository(Generic[T]):
    """Repository bound to one ``AsyncSession`` (one store transaction).

    Subclasses set ``model`` to their entity class.
    """

    model: type[T]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: str) -> T | None:
        """Fetch a row by primary key, or None."""
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()
