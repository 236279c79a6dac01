"""
Repository for ResearchJob database operations.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.models.enums import ResearchJobStatus
from portfolio_crm.models.research_job import ResearchJob


class ResearchJobRepository:
    """Repository for research job rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, job_id: UUID) -> Optional[ResearchJob]:
        return await self.db.get(ResearchJob, job_id)

    async def create_job(
        self,
        organization_type: str,
        organization_id: UUID,
        search_name: str,
        selected_city: Optional[str] = None,
        selected_state: Optional[str] = None,
        selected_country: Optional[str] = None,
        selected_website: Optional[str] = None,
    ) -> ResearchJob:
        job = ResearchJob(
            organization_type=organization_type,
            organization_id=organization_id,
            status=ResearchJobStatus.QUEUED.value,
            search_name=search_name,
            selected_city=selected_city,
            selected_state=selected_state,
            selected_country=selected_country,
            selected_website=selected_website,
        )
        self.db.add(job)
        await self.db.flush()
        await self.db.refresh(job)
        return job

    async def list_queued(
        self,
        limit: int,
        organization_type: Optional[str] = None,
        organization_id: Optional[UUID] = None,
    ) -> List[ResearchJob]:
        """Oldest queued jobs first."""
        query = select(ResearchJob).where(ResearchJob.status == ResearchJobStatus.QUEUED.value)
        if organization_type:
            query = query.where(ResearchJob.organization_type == organization_type)
        if organization_id:
            query = query.where(ResearchJob.organization_id == organization_id)
        query = query.order_by(ResearchJob.created_at.asc(), ResearchJob.id.asc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_queued(self, organization_type: Optional[str] = None) -> int:
        query = select(func.count()).select_from(ResearchJob).where(
            ResearchJob.status == ResearchJobStatus.QUEUED.value
        )
        if organization_type:
            query = query.where(ResearchJob.organization_type == organization_type)
        result = await self.db.execute(query)
        return int(result.scalar_one())

    async def list_for_organization(self, organization_type: str, organization_id: UUID) -> List[ResearchJob]:
        result = await self.db.execute(
            select(ResearchJob)
            .where(
                ResearchJob.organization_type == organization_type,
                ResearchJob.organization_id == organization_id,
            )
            .order_by(ResearchJob.created_at.asc(), ResearchJob.id.asc())
        )
        return list(result.scalars().all())
