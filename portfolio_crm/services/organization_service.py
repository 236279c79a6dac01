"""
Organization intake: verify-and-queue, manual create, re-queue, update, lookup.

Every write that depends on a duplicate check runs in the caller's session so
the check and the insert share one transaction.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.errors import NotFoundError, ValidationError
from portfolio_crm.models.enums import LeadSourceType, OrganizationKind, ResearchStatus
from portfolio_crm.models.health_system import HealthSystem
from portfolio_crm.models.research_job import ResearchJob
from portfolio_crm.repositories.organization_repository import OrganizationRepository
from portfolio_crm.repositories.research_job_repository import ResearchJobRepository
from portfolio_crm.schemas.organization import (
    EntityMatch,
    OrganizationCandidate,
    OrganizationDraft,
    OrganizationFields,
    OrganizationPatch,
)
from portfolio_crm.services.organization_dedup import OrganizationDuplicateDetector, OrganizationIdentity
from portfolio_crm.services.organization_registry import apply_business_fields, get_adapter
from portfolio_crm.services.research_job_service import assert_research_transition
from portfolio_crm.utils.text_normalization import normalize_lookup, trim_or_none
from portfolio_crm.utils.time import utc_now

logger = logging.getLogger(__name__)

NARRATIVE_LEAD_SOURCE_FALLBACK = "Narrative intake"

# Patch keys each kind accepts beyond the shared identity fields.
_KIND_PATCH_FIELDS = {
    OrganizationKind.HEALTH_SYSTEM: (),
    OrganizationKind.COMPANY: ("description", "lead_source_notes"),
    OrganizationKind.CO_INVESTOR: ("investment_notes",),
}

_SHARED_PATCH_FIELDS = (
    "legal_name",
    "website",
    "headquarters_city",
    "headquarters_state",
    "headquarters_country",
    "research_notes",
)

_IDENTITY_FIELDS = ("name", "website", "headquarters_city", "headquarters_state", "headquarters_country")


def score_organization_name(query: str, candidate: str) -> Tuple[float, str]:
    normalized_query = normalize_lookup(query)
    normalized_candidate = normalize_lookup(candidate)

    if not normalized_query or not normalized_candidate:
        return 0.0, "No comparable name"
    if normalized_query == normalized_candidate:
        return 0.98, "Exact name match"
    if normalized_candidate.startswith(normalized_query) or normalized_query.startswith(normalized_candidate):
        return 0.86, "Prefix name match"
    if normalized_query in normalized_candidate or normalized_candidate in normalized_query:
        return 0.80, "Substring name match"

    query_tokens = set(normalized_query.split(" "))
    candidate_tokens = set(normalized_candidate.split(" "))
    ratio = len(query_tokens & candidate_tokens) / max(len(query_tokens), len(candidate_tokens), 1)
    if ratio >= 0.75:
        return 0.74, "High token overlap"
    if ratio >= 0.5:
        return 0.64, "Moderate token overlap"
    return 0.52, "Low confidence name match"


class OrganizationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.detector = OrganizationDuplicateDetector(db)
        self.jobs = ResearchJobRepository(db)

    def _repo(self, kind: OrganizationKind) -> OrganizationRepository:
        return OrganizationRepository(self.db, get_adapter(kind).model)

    async def get_organization(self, kind: OrganizationKind, organization_id: UUID):
        adapter = get_adapter(kind)
        organization = await self._repo(kind).get(organization_id)
        if organization is None:
            raise NotFoundError(
                f"{adapter.label.capitalize()} not found",
                details={"organization_type": adapter.kind.value, "id": str(organization_id)},
            )
        return organization

    async def _snapshot_job(self, kind: OrganizationKind, organization, name: Optional[str] = None) -> ResearchJob:
        """Capture the search inputs as they are right now."""
        return await self.jobs.create_job(
            organization_type=OrganizationKind(kind).value,
            organization_id=organization.id,
            search_name=name or organization.name,
            selected_city=trim_or_none(organization.headquarters_city),
            selected_state=trim_or_none(organization.headquarters_state),
            selected_country=trim_or_none(organization.headquarters_country),
            selected_website=trim_or_none(organization.website),
        )

    async def verify_candidate_and_queue_research(
        self,
        kind: OrganizationKind,
        candidate: OrganizationCandidate,
        fields: Optional[OrganizationFields] = None,
    ) -> Tuple[object, ResearchJob]:
        """Duplicate-check the picked candidate, create it as QUEUED and snapshot a job."""
        adapter = get_adapter(kind)
        name = trim_or_none(candidate.name)
        if not name:
            raise ValidationError("Organization name is required", details={"field": "name"})

        await self.detector.ensure_not_duplicate(adapter.kind, candidate)

        organization = adapter.model(
            name=name,
            website=trim_or_none(candidate.website),
            headquarters_city=trim_or_none(candidate.headquarters_city),
            headquarters_state=trim_or_none(candidate.headquarters_state),
            headquarters_country=trim_or_none(candidate.headquarters_country),
            research_status=ResearchStatus.QUEUED.value,
            research_notes=trim_or_none(candidate.summary),
            research_error=None,
            research_updated_at=utc_now(),
        )
        apply_business_fields(adapter, organization, fields or OrganizationFields())
        self.db.add(organization)
        await self.db.flush()

        job = await self._snapshot_job(adapter.kind, organization, name=name)
        logger.info(
            "organization_verified_and_queued kind=%s organization_id=%s job_id=%s",
            adapter.kind.value,
            organization.id,
            job.id,
        )
        return organization, job

    async def create_organization(
        self,
        kind: OrganizationKind,
        draft: OrganizationDraft,
        queue_research: bool = False,
    ) -> Tuple[object, Optional[ResearchJob]]:
        adapter = get_adapter(kind)
        name = trim_or_none(draft.name)
        if not name:
            raise ValidationError("Organization name is required", details={"field": "name"})

        await self.detector.ensure_not_duplicate(adapter.kind, draft)

        organization = adapter.model(
            name=name,
            legal_name=trim_or_none(draft.legal_name),
            website=trim_or_none(draft.website),
            headquarters_city=trim_or_none(draft.headquarters_city),
            headquarters_state=trim_or_none(draft.headquarters_state),
            headquarters_country=trim_or_none(draft.headquarters_country),
            research_status=ResearchStatus.DRAFT.value,
            research_notes=trim_or_none(draft.research_notes),
            research_updated_at=utc_now(),
        )
        apply_business_fields(adapter, organization, draft)
        self.db.add(organization)
        await self.db.flush()

        job = None
        if queue_research:
            organization, job = await self.queue_research(adapter.kind, organization.id)
        return organization, job

    async def queue_research(self, kind: OrganizationKind, organization_id: UUID) -> Tuple[object, ResearchJob]:
        """Move an organization to QUEUED and snapshot a new job (also used for manual re-runs)."""
        organization = await self.get_organization(kind, organization_id)
        assert_research_transition(organization.research_status, ResearchStatus.QUEUED.value)

        organization.research_status = ResearchStatus.QUEUED.value
        organization.research_error = None
        organization.research_updated_at = utc_now()
        await self.db.flush()

        job = await self._snapshot_job(kind, organization)
        logger.info(
            "research_queued kind=%s organization_id=%s job_id=%s",
            OrganizationKind(kind).value,
            organization.id,
            job.id,
        )
        return organization, job

    async def update_organization(self, kind: OrganizationKind, organization_id: UUID, patch: OrganizationPatch):
        """Apply only the keys present in ``patch``; blank strings clear nullable fields."""
        adapter = get_adapter(kind)
        organization = await self.get_organization(adapter.kind, organization_id)
        present = patch.model_fields_set

        if "name" in present:
            name = trim_or_none(patch.name)
            if not name:
                raise ValidationError("Name patch cannot be empty.", details={"field": "name"})
            organization.name = name

        for field_name in _SHARED_PATCH_FIELDS + _KIND_PATCH_FIELDS[adapter.kind]:
            if field_name in present:
                setattr(organization, field_name, trim_or_none(getattr(patch, field_name)))

        if adapter.kind == OrganizationKind.COMPANY:
            await self._apply_lead_source_patch(organization, patch)

        if present & set(_IDENTITY_FIELDS):
            await self.detector.ensure_not_duplicate(
                adapter.kind,
                OrganizationIdentity.from_object(organization),
                exclude_id=organization.id,
            )

        organization.research_updated_at = utc_now()
        await self.db.flush()
        await self.db.refresh(organization)
        return organization

    async def _apply_lead_source_patch(self, company, patch: OrganizationPatch) -> None:
        lead_source_type = patch.lead_source_type
        if lead_source_type is None:
            if patch.lead_source_health_system_id or trim_or_none(patch.lead_source_health_system_name):
                lead_source_type = LeadSourceType.HEALTH_SYSTEM
            elif trim_or_none(patch.lead_source_other):
                lead_source_type = LeadSourceType.OTHER

        if lead_source_type == LeadSourceType.HEALTH_SYSTEM:
            health_system_id = await self._resolve_lead_source_health_system(patch)
            if health_system_id:
                company.lead_source_type = LeadSourceType.HEALTH_SYSTEM.value
                company.lead_source_health_system_id = health_system_id
                company.lead_source_other = None
            else:
                company.lead_source_type = LeadSourceType.OTHER.value
                company.lead_source_health_system_id = None
                company.lead_source_other = (
                    trim_or_none(patch.lead_source_health_system_name)
                    or trim_or_none(patch.lead_source_other)
                    or NARRATIVE_LEAD_SOURCE_FALLBACK
                )
        elif lead_source_type == LeadSourceType.OTHER:
            company.lead_source_type = LeadSourceType.OTHER.value
            company.lead_source_health_system_id = None
            company.lead_source_other = trim_or_none(patch.lead_source_other) or NARRATIVE_LEAD_SOURCE_FALLBACK

    async def _resolve_lead_source_health_system(self, patch: OrganizationPatch) -> Optional[UUID]:
        health_systems = OrganizationRepository(self.db, HealthSystem)
        if patch.lead_source_health_system_id:
            existing = await health_systems.get(patch.lead_source_health_system_id)
            if existing:
                return existing.id

        name = trim_or_none(patch.lead_source_health_system_name) or trim_or_none(patch.lead_source_other)
        if not name:
            return None
        matches = await health_systems.list_by_name_ci(name)
        return matches[0].id if matches else None

    async def search_by_name(self, kind: OrganizationKind, name: str, limit: int = 10) -> List[EntityMatch]:
        """Existing organizations scored against a free-text name, best first."""
        adapter = get_adapter(kind)
        tokens = [token for token in normalize_lookup(name).split(" ") if len(token) > 1]
        rows = await self._repo(adapter.kind).search_by_name_fragment(tokens[:6], limit=max(limit * 3, 25))

        matches = []
        for row in rows:
            confidence, reason = score_organization_name(name, row.name)
            matches.append(
                EntityMatch(
                    id=row.id,
                    entity_type=adapter.kind,
                    name=row.name,
                    website=row.website,
                    headquarters_city=row.headquarters_city,
                    headquarters_state=row.headquarters_state,
                    headquarters_country=row.headquarters_country,
                    confidence=confidence,
                    reason=reason,
                )
            )
        matches.sort(key=lambda match: (-match.confidence, match.name.lower()))
        return matches[:limit]
