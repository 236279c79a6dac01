import uuid

import pytest

from portfolio_crm.errors import DuplicateError, NotFoundError, ValidationError
from portfolio_crm.models.enums import LeadSourceType, OrganizationKind, ResearchStatus
from portfolio_crm.schemas.organization import (
    OrganizationCandidate,
    OrganizationDraft,
    OrganizationFields,
    OrganizationPatch,
)
from portfolio_crm.services.organization_service import OrganizationService, score_organization_name


@pytest.mark.unit
def test_organization_name_scoring():
    assert score_organization_name("Acme Health", "ACME health") == (0.98, "Exact name match")
    assert score_organization_name("Acme", "Acme Health System") == (0.86, "Prefix name match")
    assert score_organization_name("Health", "Acme Health System") == (0.80, "Substring name match")
    assert score_organization_name("", "Acme") == (0.0, "No comparable name")


@pytest.mark.asyncio
async def test_verify_creates_queued_organization_with_snapshot(db_session):
    service = OrganizationService(db_session)
    organization, job = await service.verify_candidate_and_queue_research(
        OrganizationKind.HEALTH_SYSTEM,
        OrganizationCandidate(
            name=" Acme Health ",
            website="acmehealth.org",
            headquarters_city="Boston",
            summary="Academic medical center",
        ),
        OrganizationFields(is_limited_partner=False, limited_partner_investment_usd=5000000),
    )

    assert organization.name == "Acme Health"
    assert organization.research_status == ResearchStatus.QUEUED.value
    assert organization.research_notes == "Academic medical center"
    assert organization.limited_partner_investment_usd is None
    assert job.search_name == "Acme Health"
    assert job.selected_city == "Boston"
    assert job.selected_website == "acmehealth.org"

    with pytest.raises(DuplicateError):
        await service.verify_candidate_and_queue_research(
            OrganizationKind.HEALTH_SYSTEM,
            OrganizationCandidate(name="acme health", website="https://www.acmehealth.org/"),
        )


@pytest.mark.asyncio
async def test_blank_candidate_name_is_rejected(db_session):
    with pytest.raises(ValidationError):
        await OrganizationService(db_session).verify_candidate_and_queue_research(
            OrganizationKind.COMPANY, OrganizationCandidate(name="   ")
        )


@pytest.mark.asyncio
async def test_requeue_is_only_allowed_from_terminal_or_draft(db_session):
    service = OrganizationService(db_session)
    organization, job = await service.create_organization(
        OrganizationKind.CO_INVESTOR,
        OrganizationDraft(name="Summit Partners"),
    )
    assert job is None
    assert organization.research_status == ResearchStatus.DRAFT.value

    await service.queue_research(OrganizationKind.CO_INVESTOR, organization.id)
    with pytest.raises(ValidationError):
        await service.queue_research(OrganizationKind.CO_INVESTOR, organization.id)


@pytest.mark.asyncio
async def test_patch_applies_only_present_keys(db_session):
    service = OrganizationService(db_session)
    organization, _ = await service.create_organization(
        OrganizationKind.COMPANY,
        OrganizationDraft(name="Beta Bio", website="betabio.com", headquarters_city="Austin"),
    )

    updated = await service.update_organization(
        OrganizationKind.COMPANY,
        organization.id,
        OrganizationPatch(headquarters_city="  ", description="Lab automation"),
    )

    assert updated.headquarters_city is None
    assert updated.website == "betabio.com"
    assert updated.description == "Lab automation"

    with pytest.raises(ValidationError):
        await service.update_organization(OrganizationKind.COMPANY, organization.id, OrganizationPatch(name=" "))


@pytest.mark.asyncio
async def test_patch_rejects_rename_onto_existing_identity(db_session):
    service = OrganizationService(db_session)
    await service.create_organization(
        OrganizationKind.COMPANY, OrganizationDraft(name="Beta Bio", website="betabio.com")
    )
    other, _ = await service.create_organization(
        OrganizationKind.COMPANY, OrganizationDraft(name="Gamma Bio", website="betabio.com")
    )

    with pytest.raises(DuplicateError):
        await service.update_organization(OrganizationKind.COMPANY, other.id, OrganizationPatch(name="BETA BIO"))


@pytest.mark.asyncio
async def test_lead_source_patch_resolves_health_system_by_name(db_session):
    service = OrganizationService(db_session)
    health_system, _ = await service.create_organization(
        OrganizationKind.HEALTH_SYSTEM, OrganizationDraft(name="Mercy General")
    )
    company, _ = await service.create_organization(OrganizationKind.COMPANY, OrganizationDraft(name="Beta Bio"))

    linked = await service.update_organization(
        OrganizationKind.COMPANY,
        company.id,
        OrganizationPatch(lead_source_type=LeadSourceType.HEALTH_SYSTEM, lead_source_health_system_name="mercy general"),
    )
    assert linked.lead_source_type == LeadSourceType.HEALTH_SYSTEM.value
    assert linked.lead_source_health_system_id == health_system.id

    unresolved = await service.update_organization(
        OrganizationKind.COMPANY,
        company.id,
        OrganizationPatch(lead_source_health_system_name="Unknown Clinic"),
    )
    assert unresolved.lead_source_type == LeadSourceType.OTHER.value
    assert unresolved.lead_source_health_system_id is None
    assert unresolved.lead_source_other == "Unknown Clinic"


@pytest.mark.asyncio
async def test_search_and_missing_lookup(db_session):
    service = OrganizationService(db_session)
    await service.create_organization(OrganizationKind.COMPANY, OrganizationDraft(name="Beta Bio"))
    await service.create_organization(OrganizationKind.COMPANY, OrganizationDraft(name="Beta Bio Labs"))

    matches = await service.search_by_name(OrganizationKind.COMPANY, "beta bio")

    assert [match.name for match in matches] == ["Beta Bio", "Beta Bio Labs"]
    assert matches[0].confidence == 0.98

    with pytest.raises(NotFoundError):
        await service.get_organization(OrganizationKind.COMPANY, uuid.uuid4())
