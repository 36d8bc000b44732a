"""Shared repository plumbing."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffing_api.models.orm.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Lookup and write helpers for one mapped table.

    Writes are flushed so generated keys and constraint violations surface
    immediately. The surrounding ``atomic`` block decides whether they are
    committed.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID, for_update: bool = False) -> ModelT | None:
        """Load one row by primary key.

        Args:
            id: Primary key
            for_update: Hold a row lock until the transaction ends

        Returns:
            The row, or None
        """
        query = select(self.model).where(self.model.id == id)
        if for_update:
            query = query.with_for_update()
        return (await self.session.execute(query)).scalar_one_or_none()

    async def create(self, **values: Any) -> ModelT:
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, row: ModelT, **changes: Any) -> ModelT:
        """Assign ``changes`` to mapped attributes of ``row`` and flush.

        Keys that are not attributes of the model are ignored.
        """
        for name, value in changes.items():
            if hasattr(row, name):
                setattr(row, name, value)
        await self.session.flush()
        return row

    async def delete(self, row: ModelT) -> None:
        await self.session.delete(row)
        await self.session.flush()
