"""
Repository for Contact database operations.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.models.contact import Contact


class ContactRepository:
    """Repository for canonical contacts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, contact_id: UUID) -> Optional[Contact]:
        return await self.db.get(Contact, contact_id)

    async def get_by_linkedin(self, linkedin_url: str) -> Optional[Contact]:
        result = await self.db.execute(
            select(Contact)
            .where(Contact.linkedin_url == linkedin_url)
            .order_by(Contact.created_at.asc(), Contact.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[Contact]:
        result = await self.db.execute(
            select(Contact)
            .where(Contact.email == email)
            .order_by(Contact.created_at.asc(), Contact.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_name_pool(
        self,
        full_name: str,
        first_name: str,
        last_name: str,
        limit: int = 50,
    ) -> List[Contact]:
        """
        Wide case-insensitive prefilter for name scoring.

        Returns contacts whose name equals the full name or contains the first
        or last name. Scoring happens in memory.
        """
        lowered_name = func.lower(Contact.name)
        clauses = [lowered_name == full_name.lower()]
        if last_name:
            clauses.append(lowered_name.contains(last_name.lower(), autoescape=True))
        if first_name:
            clauses.append(lowered_name.contains(first_name.lower(), autoescape=True))

        result = await self.db.execute(
            select(Contact)
            .where(or_(*clauses))
            .order_by(Contact.created_at.asc(), Contact.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create(self, **fields) -> Contact:
        record = Contact(**fields)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record
