"""
Research queue runner.

Per queued job:
1. Short transaction: job and organization -> RUNNING.
2. Enrichment call, outside any transaction, using the job's snapshotted inputs.
3. One transaction: rebuild research-derived children, overwrite organization
   fields with non-empty researched values, replace all contact links, job and
   organization -> COMPLETED.
4. On any failure: a separate transaction marks job and organization FAILED with
   a truncated message. Step 3 rolled back, so existing children are untouched.

Jobs never share a transaction, and one job failing never stops the batch.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.core.config import settings
from portfolio_crm.db.session import async_session_maker
from portfolio_crm.errors import NotFoundError, ValidationError
from portfolio_crm.models.enums import OrganizationKind, ResearchJobStatus, ResearchStatus
from portfolio_crm.repositories.organization_repository import OrganizationRepository
from portfolio_crm.repositories.research_job_repository import ResearchJobRepository
from portfolio_crm.schemas.enrichment import OrganizationEnrichmentDraft, OrganizationSeed
from portfolio_crm.schemas.research import ResearchBatchResult
from portfolio_crm.services.contact_link_service import ContactLinkService
from portfolio_crm.services.organization_registry import apply_enrichment_fields, get_adapter
from portfolio_crm.services.research_providers.base import OrganizationEnrichmentProvider
from portfolio_crm.utils.time import elapsed_seconds, utc_now

logger = logging.getLogger(__name__)

JOB_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ResearchJobStatus.QUEUED.value: frozenset({ResearchJobStatus.RUNNING.value}),
    ResearchJobStatus.RUNNING.value: frozenset({ResearchJobStatus.COMPLETED.value, ResearchJobStatus.FAILED.value}),
    ResearchJobStatus.COMPLETED.value: frozenset(),
    ResearchJobStatus.FAILED.value: frozenset(),
}

RESEARCH_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ResearchStatus.DRAFT.value: frozenset({ResearchStatus.QUEUED.value}),
    ResearchStatus.QUEUED.value: frozenset({ResearchStatus.RUNNING.value}),
    ResearchStatus.RUNNING.value: frozenset({ResearchStatus.COMPLETED.value, ResearchStatus.FAILED.value}),
    ResearchStatus.COMPLETED.value: frozenset({ResearchStatus.QUEUED.value}),
    ResearchStatus.FAILED.value: frozenset({ResearchStatus.QUEUED.value}),
}


def assert_job_transition(current: str, target: str) -> None:
    if target not in JOB_TRANSITIONS.get(current, frozenset()):
        raise ValidationError(
            f"Research job cannot move from {current} to {target}",
            details={"current": current, "target": target},
        )


def assert_research_transition(current: str, target: str) -> None:
    if target not in RESEARCH_TRANSITIONS.get(current, frozenset()):
        raise ValidationError(
            f"Research cannot move from {current} to {target}",
            details={"current": current, "target": target},
        )


def truncate_error(message: str, limit: Optional[int] = None) -> str:
    limit = limit or settings.RESEARCH_ERROR_MAX_CHARS
    return message[:limit]


def _failure_message(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or f"{type(exc).__name__}: unknown research failure"


@dataclass
class ClaimedJob:
    job_id: UUID
    kind: OrganizationKind
    organization_id: UUID
    seed: OrganizationSeed


class ResearchJobService:
    def __init__(
        self,
        provider: OrganizationEnrichmentProvider,
        session_factory: Callable[[], AsyncSession] = async_session_maker,
    ):
        self.provider = provider
        self.session_factory = session_factory

    async def run_queued_jobs(
        self,
        max_jobs: int = 1,
        organization_kind: Optional[OrganizationKind] = None,
        organization_id: Optional[UUID] = None,
    ) -> ResearchBatchResult:
        """Process up to ``max_jobs`` of the oldest queued jobs and return counts."""
        async with self.session_factory() as db:
            jobs = await ResearchJobRepository(db).list_queued(
                limit=max_jobs,
                organization_type=OrganizationKind(organization_kind).value if organization_kind else None,
                organization_id=organization_id,
            )
            job_ids = [job.id for job in jobs]

        result = ResearchBatchResult(queued_checked=len(job_ids))
        for job_id in job_ids:
            outcome = await self.run_job(job_id)
            if outcome == ResearchJobStatus.COMPLETED.value:
                result.completed += 1
            elif outcome == ResearchJobStatus.FAILED.value:
                result.failed += 1

        logger.info(
            "research_batch_finished queued_checked=%s completed=%s failed=%s",
            result.queued_checked,
            result.completed,
            result.failed,
        )
        return result

    async def run_job(self, job_id: UUID) -> Optional[str]:
        """Run one job end to end; returns its terminal status, or None if it was not claimable."""
        try:
            claimed = await self._claim(job_id)
        except ValidationError as exc:
            logger.info("research_job_not_claimable job_id=%s reason=%s", job_id, exc.message)
            return None
        except NotFoundError:
            return ResearchJobStatus.FAILED.value

        if claimed is None:
            return None

        try:
            draft = await self.provider.enrich(claimed.kind, claimed.seed)
            await self._persist_success(claimed, draft)
        except Exception as exc:  # noqa: BLE001
            message = truncate_error(_failure_message(exc))
            logger.warning(
                "research_job_failed job_id=%s kind=%s organization_id=%s error=%s",
                claimed.job_id,
                claimed.kind.value,
                claimed.organization_id,
                message,
            )
            await self._persist_failure(claimed.job_id, claimed.kind, claimed.organization_id, message)
            return ResearchJobStatus.FAILED.value

        return ResearchJobStatus.COMPLETED.value

    async def _claim(self, job_id: UUID) -> Optional[ClaimedJob]:
        """Move a queued job to RUNNING; raises NotFoundError once an orphaned job is recorded as FAILED."""
        orphaned = False
        async with self.session_factory() as db:
            async with db.begin():
                job = await ResearchJobRepository(db).get(job_id)
                if job is None:
                    return None
                assert_job_transition(job.status, ResearchJobStatus.RUNNING.value)

                kind = OrganizationKind(job.organization_type)
                organization = await OrganizationRepository(db, get_adapter(kind).model).get(job.organization_id)

                job.status = ResearchJobStatus.RUNNING.value
                job.started_at = utc_now()
                job.error_message = None

                if organization is None:
                    job.status = ResearchJobStatus.FAILED.value
                    job.completed_at = utc_now()
                    job.error_message = "Organization not found"
                    logger.warning("research_job_orphaned job_id=%s organization_id=%s", job.id, job.organization_id)
                    orphaned = True
                else:
                    organization.research_status = ResearchStatus.RUNNING.value
                    organization.research_error = None

                    seed = OrganizationSeed(
                        name=job.search_name or organization.name,
                        website=job.selected_website or organization.website,
                        headquarters_city=job.selected_city or organization.headquarters_city,
                        headquarters_state=job.selected_state or organization.headquarters_state,
                        headquarters_country=job.selected_country or organization.headquarters_country,
                    )
                    logger.info(
                        "research_job_running job_id=%s kind=%s organization_id=%s", job.id, kind.value, organization.id
                    )
                    claimed = ClaimedJob(job_id=job.id, kind=kind, organization_id=organization.id, seed=seed)

        if orphaned:
            raise NotFoundError("Organization not found", details={"job_id": str(job_id)})
        return claimed

    async def _persist_success(self, claimed: ClaimedJob, draft: OrganizationEnrichmentDraft) -> None:
        adapter = get_adapter(claimed.kind)
        async with self.session_factory() as db:
            async with db.begin():
                job = await ResearchJobRepository(db).get(claimed.job_id)
                organization = await OrganizationRepository(db, adapter.model).get(claimed.organization_id)
                if job is None or organization is None:
                    raise RuntimeError("Research job or organization disappeared while running")
                assert_job_transition(job.status, ResearchJobStatus.COMPLETED.value)

                await adapter.clear_children(db, organization.id)
                children = await adapter.write_children(db, organization, draft)
                changed = apply_enrichment_fields(adapter, organization, draft)

                now = utc_now()
                organization.research_status = ResearchStatus.COMPLETED.value
                organization.research_error = None
                organization.research_updated_at = now
                job.status = ResearchJobStatus.COMPLETED.value
                job.completed_at = now
                job.error_message = None

                linked = await ContactLinkService(db).replace_all_links(
                    adapter.kind,
                    organization.id,
                    adapter.enrichment_contacts(draft),
                )
                logger.info(
                    "research_job_completed job_id=%s children=%s contacts=%s fields_changed=%s seconds=%s",
                    job.id,
                    children,
                    len(linked),
                    ",".join(changed) or "-",
                    elapsed_seconds(job.started_at, now),
                )

    async def _persist_failure(
        self,
        job_id: UUID,
        kind: OrganizationKind,
        organization_id: UUID,
        message: str,
    ) -> None:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    job = await ResearchJobRepository(db).get(job_id)
                    organization = await OrganizationRepository(db, get_adapter(kind).model).get(organization_id)
                    now = utc_now()
                    if job is not None and job.status == ResearchJobStatus.RUNNING.value:
                        job.status = ResearchJobStatus.FAILED.value
                        job.completed_at = now
                        job.error_message = message
                    if organization is not None:
                        organization.research_status = ResearchStatus.FAILED.value
                        organization.research_error = message
                        organization.research_updated_at = now
        except Exception:  # noqa: BLE001
            logger.exception("research_job_failure_not_recorded job_id=%s", job_id)


async def process_research_jobs(
    provider: OrganizationEnrichmentProvider,
    max_jobs: int = 1,
    organization_kind: Optional[OrganizationKind] = None,
    organization_id: Optional[UUID] = None,
    session_factory: Callable[[], AsyncSession] = async_session_maker,
) -> ResearchBatchResult:
    service = ResearchJobService(provider=provider, session_factory=session_factory)
    return await service.run_queued_jobs(
        max_jobs=max_jobs,
        organization_kind=organization_kind,
        organization_id=organization_id,
    )
