"""
Organization intake endpoints: verify-and-queue, manual create, update,
lookup and research re-runs for health systems, companies and co-investors.
"""

from typing import Callable, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.core.dependencies import get_db, get_enrichment_provider, get_session_factory
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.repositories.research_job_repository import ResearchJobRepository
from portfolio_crm.schemas.organization import (
    EntityMatch,
    OrganizationDraft,
    OrganizationPatch,
    OrganizationRead,
    QueuedResearchRead,
    VerifyOrganizationRequest,
)
from portfolio_crm.schemas.research import ProcessResearchJobsRequest, ResearchBatchResult, ResearchJobRead
from portfolio_crm.services.organization_service import OrganizationService
from portfolio_crm.services.research_job_service import ResearchJobService
from portfolio_crm.services.research_providers import OrganizationEnrichmentProvider

router = APIRouter(prefix="/organizations", tags=["Organizations"])


def _queued_read(kind: OrganizationKind, organization, job) -> QueuedResearchRead:
    return QueuedResearchRead(
        organization_type=kind,
        organization=OrganizationRead.model_validate(organization),
        job_id=job.id,
    )


@router.post("/{kind}/verify", response_model=QueuedResearchRead, status_code=status.HTTP_201_CREATED)
async def verify_and_queue(
    kind: OrganizationKind,
    payload: VerifyOrganizationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create the picked candidate (duplicate-checked) and queue its research."""
    service = OrganizationService(db)
    organization, job = await service.verify_candidate_and_queue_research(kind, payload.candidate, payload.fields)
    return _queued_read(kind, organization, job)


@router.post("/{kind}", response_model=OrganizationRead, status_code=status.HTTP_201_CREATED)
async def create_organization(
    kind: OrganizationKind,
    payload: OrganizationDraft,
    queue_research: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    service = OrganizationService(db)
    organization, _ = await service.create_organization(kind, payload, queue_research=queue_research)
    return OrganizationRead.model_validate(organization)


@router.get("/{kind}/search", response_model=List[EntityMatch])
async def search_organizations(
    kind: OrganizationKind,
    name: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    return await OrganizationService(db).search_by_name(kind, name, limit=limit)


@router.post("/{kind}/research-jobs/process", response_model=ResearchBatchResult)
async def process_research_jobs(
    kind: OrganizationKind,
    payload: ProcessResearchJobsRequest,
    session_factory: Callable[[], AsyncSession] = Depends(get_session_factory),
    provider: OrganizationEnrichmentProvider = Depends(get_enrichment_provider),
):
    """Run a batch of queued jobs; each job commits or fails on its own."""
    service = ResearchJobService(provider=provider, session_factory=session_factory)
    return await service.run_queued_jobs(
        max_jobs=payload.max_jobs,
        organization_kind=kind,
        organization_id=payload.organization_id,
    )


@router.patch("/{kind}/{organization_id}", response_model=OrganizationRead)
async def update_organization(
    kind: OrganizationKind,
    organization_id: UUID,
    payload: OrganizationPatch,
    db: AsyncSession = Depends(get_db),
):
    organization = await OrganizationService(db).update_organization(kind, organization_id, payload)
    return OrganizationRead.model_validate(organization)


@router.post("/{kind}/{organization_id}/rerun-research", response_model=QueuedResearchRead)
async def rerun_research(
    kind: OrganizationKind,
    organization_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    organization, job = await OrganizationService(db).queue_research(kind, organization_id)
    return _queued_read(kind, organization, job)


@router.get("/{kind}/{organization_id}/research-jobs", response_model=List[ResearchJobRead])
async def list_research_jobs(
    kind: OrganizationKind,
    organization_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    await OrganizationService(db).get_organization(kind, organization_id)
    return await ResearchJobRepository(db).list_for_organization(kind.value, organization_id)
