"""
Repository for ContactLink database operations.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.models.contact_link import ContactLink


class ContactLinkRepository:
    """Repository for contact role links."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_link(
        self,
        contact_id: UUID,
        organization_type: str,
        organization_id: UUID,
        role_type: str,
    ) -> Optional[ContactLink]:
        result = await self.db.execute(
            select(ContactLink).where(
                and_(
                    ContactLink.contact_id == contact_id,
                    ContactLink.organization_type == organization_type,
                    ContactLink.organization_id == organization_id,
                    ContactLink.role_type == role_type,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_for_organization(self, organization_type: str, organization_id: UUID) -> List[ContactLink]:
        result = await self.db.execute(
            select(ContactLink)
            .where(
                and_(
                    ContactLink.organization_type == organization_type,
                    ContactLink.organization_id == organization_id,
                )
            )
            .order_by(ContactLink.created_at.asc(), ContactLink.id.asc())
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        contact_id: UUID,
        organization_type: str,
        organization_id: UUID,
        role_type: str,
        title: Optional[str],
    ) -> ContactLink:
        """Create the link or update its title; returns the single row for the identity."""
        current = await self.get_link(contact_id, organization_type, organization_id, role_type)
        if current:
            current.title = title
            await self.db.flush()
            await self.db.refresh(current)
            return current

        record = ContactLink(
            contact_id=contact_id,
            organization_type=organization_type,
            organization_id=organization_id,
            role_type=role_type,
            title=title,
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record

    async def delete_for_organization(self, organization_type: str, organization_id: UUID) -> int:
        result = await self.db.execute(
            delete(ContactLink).where(
                and_(
                    ContactLink.organization_type == organization_type,
                    ContactLink.organization_id == organization_id,
                )
            )
        )
        return result.rowcount or 0
