"""Research queue runs against the fixture provider and an in-memory database."""

import uuid

import pytest
from sqlalchemy import select

from portfolio_crm.errors import EnrichmentFailure, ValidationError
from portfolio_crm.models.company import CompanyCoInvestorLink
from portfolio_crm.models.contact_link import ContactLink
from portfolio_crm.models.enums import LinkSource, OrganizationKind, ResearchJobStatus, ResearchStatus
from portfolio_crm.models.health_system import Executive, HealthSystem
from portfolio_crm.models.research_job import ResearchJob
from portfolio_crm.repositories.research_job_repository import ResearchJobRepository
from portfolio_crm.schemas.enrichment import OrganizationEnrichmentDraft, OrganizationSeed
from portfolio_crm.schemas.organization import OrganizationPatch
from portfolio_crm.services.contact_link_service import ContactLinkService
from portfolio_crm.services.organization_registry import apply_enrichment_fields, get_adapter
from portfolio_crm.services.organization_service import OrganizationService
from portfolio_crm.services.research_job_service import (
    ResearchJobService,
    assert_job_transition,
    assert_research_transition,
    truncate_error,
)
from portfolio_crm.services.research_providers import FixtureResearchProvider

ACME_FIXTURES = {
    "default": {},
    "by_name": {
        "Acme Health": {
            "website": "https://acmehealth.org",
            "headquarters_city": "Boston",
            "net_patient_revenue_usd": 1200000000,
            "is_alliance_member": True,
            "executives": [
                {"name": "Robert Smith", "title": "CEO"},
                {"name": "Ann Lee", "title": "CFO", "email": "ann@acmehealth.org"},
            ],
            "venture_partners": [{"name": "Raj Patel", "title": "Managing Director"}],
        },
        "Broken Health": {"error": "provider exploded"},
    },
}


class RecordingProvider:
    def __init__(self):
        self.seeds = []

    async def enrich(self, kind, seed):
        self.seeds.append(seed)
        return OrganizationEnrichmentDraft(name=seed.name)


@pytest.mark.unit
def test_transition_tables():
    assert_job_transition("QUEUED", "RUNNING")
    assert_research_transition("FAILED", "QUEUED")
    with pytest.raises(ValidationError):
        assert_job_transition("COMPLETED", "RUNNING")
    with pytest.raises(ValidationError):
        assert_research_transition("RUNNING", "QUEUED")


@pytest.mark.unit
def test_truncate_error():
    assert len(truncate_error("x" * 2000)) == 900
    assert truncate_error("short") == "short"


@pytest.mark.asyncio
async def test_fixture_provider_error_entry():
    provider = FixtureResearchProvider(fixtures=ACME_FIXTURES)

    with pytest.raises(EnrichmentFailure):
        await provider.enrich(OrganizationKind.HEALTH_SYSTEM, OrganizationSeed(name="broken health"))


@pytest.mark.asyncio
async def test_successful_job_rebuilds_children_and_links(create_org, session_factory):
    organization, job = await create_org(OrganizationKind.HEALTH_SYSTEM, queue_research=True, name="Acme Health")
    assert organization.research_status == ResearchStatus.QUEUED.value

    service = ResearchJobService(FixtureResearchProvider(fixtures=ACME_FIXTURES), session_factory=session_factory)
    result = await service.run_queued_jobs(max_jobs=5)

    assert (result.queued_checked, result.completed, result.failed) == (1, 1, 0)

    async with session_factory() as db:
        refreshed = await db.get(HealthSystem, organization.id)
        assert refreshed.research_status == ResearchStatus.COMPLETED.value
        assert refreshed.website == "https://acmehealth.org"
        assert refreshed.headquarters_city == "Boston"
        assert refreshed.is_alliance_member is True

        stored_job = await db.get(ResearchJob, job.id)
        assert stored_job.status == ResearchJobStatus.COMPLETED.value
        assert stored_job.completed_at is not None

        executives = (await db.execute(select(Executive).where(Executive.health_system_id == organization.id))).scalars().all()
        assert sorted(row.name for row in executives) == ["Ann Lee", "Robert Smith"]

        links = (await db.execute(select(ContactLink).where(ContactLink.organization_id == organization.id))).scalars().all()
        assert sorted(link.role_type for link in links) == ["EXECUTIVE", "EXECUTIVE", "VENTURE_PARTNER"]

    # A rerun replaces children instead of appending.
    async with session_factory() as db:
        async with db.begin():
            await OrganizationService(db).queue_research(OrganizationKind.HEALTH_SYSTEM, organization.id)
    await service.run_queued_jobs(max_jobs=5)

    async with session_factory() as db:
        executives = (await db.execute(select(Executive).where(Executive.health_system_id == organization.id))).scalars().all()
        assert len(executives) == 2


@pytest.mark.asyncio
async def test_failure_is_recorded_and_truncated(create_org, session_factory):
    organization, job = await create_org(OrganizationKind.HEALTH_SYSTEM, queue_research=True, name="Acme Health")
    provider = FixtureResearchProvider(fixtures={"default": {"error": "x" * 2000}})
    service = ResearchJobService(provider, session_factory=session_factory)

    outcome = await service.run_job(job.id)

    assert outcome == ResearchJobStatus.FAILED.value
    async with session_factory() as db:
        stored_job = await db.get(ResearchJob, job.id)
        refreshed = await db.get(HealthSystem, organization.id)
        assert stored_job.status == ResearchJobStatus.FAILED.value
        assert len(stored_job.error_message) == 900
        assert refreshed.research_status == ResearchStatus.FAILED.value
        assert refreshed.research_error == stored_job.error_message

    # Terminal jobs are never claimed again.
    assert await service.run_job(job.id) is None


@pytest.mark.asyncio
async def test_batch_continues_after_one_failure(create_org, session_factory):
    await create_org(OrganizationKind.HEALTH_SYSTEM, queue_research=True, name="Broken Health")
    await create_org(OrganizationKind.HEALTH_SYSTEM, queue_research=True, name="Acme Health")
    service = ResearchJobService(FixtureResearchProvider(fixtures=ACME_FIXTURES), session_factory=session_factory)

    result = await service.run_queued_jobs(max_jobs=10)

    assert (result.queued_checked, result.completed, result.failed) == (2, 1, 1)


@pytest.mark.asyncio
async def test_job_uses_snapshot_taken_at_queue_time(create_org, session_factory):
    organization, _ = await create_org(
        OrganizationKind.COMPANY,
        queue_research=True,
        name="Beta Bio",
        headquarters_city="Austin",
    )
    async with session_factory() as db:
        async with db.begin():
            await OrganizationService(db).update_organization(
                OrganizationKind.COMPANY,
                organization.id,
                OrganizationPatch(name="Beta Biologics", headquarters_city="Dallas"),
            )

    provider = RecordingProvider()
    await ResearchJobService(provider, session_factory=session_factory).run_queued_jobs(max_jobs=1)

    assert provider.seeds[0].name == "Beta Bio"
    assert provider.seeds[0].headquarters_city == "Austin"


@pytest.mark.asyncio
async def test_research_rerun_keeps_manual_company_links(create_org, session_factory):
    summit, _ = await create_org(OrganizationKind.CO_INVESTOR, name="Summit Partners")
    oak, _ = await create_org(OrganizationKind.CO_INVESTOR, name="Oak Ventures")
    company, _ = await create_org(OrganizationKind.COMPANY, queue_research=True, name="Beta Bio")

    async with session_factory() as db:
        async with db.begin():
            db.add(
                CompanyCoInvestorLink(
                    company_id=company.id,
                    co_investor_id=oak.id,
                    relationship_type="PARTNER",
                    source=LinkSource.MANUAL.value,
                )
            )

    fixtures = {"default": {"co_investor_links": [{"name": "summit partners", "relationship_type": "investor"}]}}
    service = ResearchJobService(FixtureResearchProvider(fixtures=fixtures), session_factory=session_factory)
    await service.run_queued_jobs(max_jobs=1)

    async with session_factory() as db:
        async with db.begin():
            await OrganizationService(db).queue_research(OrganizationKind.COMPANY, company.id)
    await service.run_queued_jobs(max_jobs=1)

    async with session_factory() as db:
        links = (
            await db.execute(select(CompanyCoInvestorLink).where(CompanyCoInvestorLink.company_id == company.id))
        ).scalars().all()
        by_source = sorted((link.source, link.co_investor_id) for link in links)
        assert by_source == sorted(
            [(LinkSource.MANUAL.value, oak.id), (LinkSource.RESEARCH.value, summit.id)]
        )


class StaticDraftProvider:
    def __init__(self, **fields):
        self.fields = fields

    async def enrich(self, kind, seed):
        return OrganizationEnrichmentDraft(name=seed.name, **self.fields)


class RaisingProvider:
    async def enrich(self, kind, seed):
        raise EnrichmentFailure("provider timed out")


async def _requeue(session_factory, kind, organization_id):
    async with session_factory() as db:
        async with db.begin():
            await OrganizationService(db).queue_research(kind, organization_id)


async def _children_and_links(session_factory, organization_id):
    async with session_factory() as db:
        executives = (
            await db.execute(select(Executive).where(Executive.health_system_id == organization_id))
        ).scalars().all()
        links = (
            await db.execute(select(ContactLink).where(ContactLink.organization_id == organization_id))
        ).scalars().all()
        return sorted(row.name for row in executives), len(links)


@pytest.mark.unit
def test_empty_researched_values_never_clear_fields():
    organization = HealthSystem(
        name="Acme Health",
        website="https://acmehealth.org",
        headquarters_city="Boston",
        is_alliance_member=True,
    )
    draft = OrganizationEnrichmentDraft(
        name="Acme Health",
        website="",
        headquarters_city=None,
        headquarters_state="MA",
        is_alliance_member=False,
    )

    changed = apply_enrichment_fields(get_adapter(OrganizationKind.HEALTH_SYSTEM), organization, draft)

    assert changed == ["headquarters_state"]
    assert organization.website == "https://acmehealth.org"
    assert organization.headquarters_city == "Boston"
    assert organization.is_alliance_member is True


@pytest.mark.asyncio
async def test_rerun_with_empty_values_keeps_existing_fields(create_org, session_factory):
    organization, _ = await create_org(OrganizationKind.HEALTH_SYSTEM, queue_research=True, name="Acme Health")
    await ResearchJobService(
        FixtureResearchProvider(fixtures=ACME_FIXTURES), session_factory=session_factory
    ).run_queued_jobs(max_jobs=1)

    await _requeue(session_factory, OrganizationKind.HEALTH_SYSTEM, organization.id)
    service = ResearchJobService(StaticDraftProvider(website="", headquarters_city=None), session_factory=session_factory)
    result = await service.run_queued_jobs(max_jobs=1)

    assert result.completed == 1
    async with session_factory() as db:
        refreshed = await db.get(HealthSystem, organization.id)
        assert refreshed.name == "Acme Health"
        assert refreshed.website == "https://acmehealth.org"
        assert refreshed.headquarters_city == "Boston"
        assert refreshed.research_status == ResearchStatus.COMPLETED.value


@pytest.mark.asyncio
async def test_failed_rerun_leaves_previous_children_and_links(create_org, session_factory, monkeypatch):
    organization, _ = await create_org(OrganizationKind.HEALTH_SYSTEM, queue_research=True, name="Acme Health")
    await ResearchJobService(
        FixtureResearchProvider(fixtures=ACME_FIXTURES), session_factory=session_factory
    ).run_queued_jobs(max_jobs=1)
    before = await _children_and_links(session_factory, organization.id)
    assert before == (["Ann Lee", "Robert Smith"], 3)

    # Provider error before anything is written.
    await _requeue(session_factory, OrganizationKind.HEALTH_SYSTEM, organization.id)
    result = await ResearchJobService(RaisingProvider(), session_factory=session_factory).run_queued_jobs(max_jobs=1)
    assert result.failed == 1
    assert await _children_and_links(session_factory, organization.id) == before

    # Error inside the persist transaction, after children were cleared and rewritten.
    async def exploding_replace(self, *args, **kwargs):
        raise RuntimeError("links exploded")

    monkeypatch.setattr(ContactLinkService, "replace_all_links", exploding_replace)
    await _requeue(session_factory, OrganizationKind.HEALTH_SYSTEM, organization.id)
    service = ResearchJobService(
        StaticDraftProvider(executives=[{"name": "Someone New", "title": "COO"}], website="https://new.example"),
        session_factory=session_factory,
    )
    result = await service.run_queued_jobs(max_jobs=1)

    assert result.failed == 1
    assert await _children_and_links(session_factory, organization.id) == before
    async with session_factory() as db:
        refreshed = await db.get(HealthSystem, organization.id)
        assert refreshed.website == "https://acmehealth.org"
        assert refreshed.research_status == ResearchStatus.FAILED.value
        assert refreshed.research_error == "links exploded"


@pytest.mark.asyncio
async def test_job_for_missing_organization_counts_as_failed(session_factory):
    async with session_factory() as db:
        async with db.begin():
            job = await ResearchJobRepository(db).create_job(
                organization_type=OrganizationKind.COMPANY.value,
                organization_id=uuid.uuid4(),
                search_name="Ghost Labs",
            )
        assert await ResearchJobRepository(db).count_queued(OrganizationKind.COMPANY.value) == 1
        assert await ResearchJobRepository(db).count_queued(OrganizationKind.CO_INVESTOR.value) == 0

    service = ResearchJobService(RecordingProvider(), session_factory=session_factory)
    result = await service.run_queued_jobs(max_jobs=5)

    assert (result.queued_checked, result.completed, result.failed) == (1, 0, 1)
    async with session_factory() as db:
        stored = await db.get(ResearchJob, job.id)
        assert stored.status == ResearchJobStatus.FAILED.value
        assert stored.error_message == "Organization not found"
