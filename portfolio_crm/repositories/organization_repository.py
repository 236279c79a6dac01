"""
Repository for organization rows of any kind.

The same queries serve health systems, companies and co-investors; the
mapped class is chosen by the caller.
"""

from typing import Any, List, Optional, Type
from uuid import UUID

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession


class OrganizationRepository:
    """Repository bound to one organization model."""

    def __init__(self, db: AsyncSession, model: Type[Any]):
        self.db = db
        self.model = model

    async def get(self, organization_id: UUID) -> Optional[Any]:
        return await self.db.get(self.model, organization_id)

    async def list_by_name_ci(self, name: str) -> List[Any]:
        """Case-insensitive exact name match (the duplicate-check prefilter)."""
        result = await self.db.execute(
            select(self.model)
            .where(func.lower(func.trim(self.model.name)) == name.strip().lower())
            .order_by(self.model.created_at.asc(), self.model.id.asc())
        )
        return list(result.scalars().all())

    async def search_by_name_fragment(self, tokens: List[str], limit: int = 25) -> List[Any]:
        """Rows whose name contains any of the given lowercase tokens."""
        if not tokens:
            return []
        lowered_name = func.lower(self.model.name)
        result = await self.db.execute(
            select(self.model)
            .where(or_(*[lowered_name.contains(token, autoescape=True) for token in tokens]))
            .order_by(self.model.name.asc(), self.model.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, **fields) -> Any:
        record = self.model(**fields)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record
