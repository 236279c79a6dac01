import pytest

from portfolio_crm.errors import DuplicateError
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.services.organization_dedup import (
    OrganizationDuplicateDetector,
    OrganizationIdentity,
    format_location_for_duplicate_message,
    is_duplicate,
)


@pytest.mark.unit
def test_normalized_website_marks_duplicate():
    candidate = OrganizationIdentity(name="Acme Health", website="https://acmehealth.org/")
    existing = OrganizationIdentity(name="ACME HEALTH", website="http://www.acmehealth.org")
    assert is_duplicate(existing, candidate)


@pytest.mark.unit
def test_website_match_ignores_conflicting_location():
    candidate = OrganizationIdentity(name="Acme Health", website="acmehealth.org", headquarters_city="Boston")
    existing = OrganizationIdentity(name="Acme Health", website="acmehealth.org", headquarters_city="Denver")
    assert is_duplicate(existing, candidate)


@pytest.mark.unit
def test_different_names_never_collide():
    candidate = OrganizationIdentity(name="Acme Health", website="acmehealth.org")
    existing = OrganizationIdentity(name="Acme Health System", website="acmehealth.org")
    assert not is_duplicate(existing, candidate)


@pytest.mark.unit
def test_name_alone_is_not_enough():
    assert not is_duplicate(OrganizationIdentity(name="Acme"), OrganizationIdentity(name="acme"))


@pytest.mark.unit
def test_location_fields_present_on_either_side_must_all_match():
    existing = OrganizationIdentity(name="Acme", headquarters_city="Boston", headquarters_state="MA")
    assert is_duplicate(existing, OrganizationIdentity(name="Acme", headquarters_city=" boston ", headquarters_state="ma"))
    assert not is_duplicate(existing, OrganizationIdentity(name="Acme", headquarters_city="Boston"))
    assert not is_duplicate(
        existing,
        OrganizationIdentity(name="Acme", headquarters_city="Boston", headquarters_state="MA", headquarters_country="US"),
    )


@pytest.mark.unit
def test_duplicate_message_location():
    assert (
        format_location_for_duplicate_message(OrganizationIdentity(name="Acme", headquarters_city="Boston", headquarters_state="MA"))
        == "Boston, MA"
    )
    assert format_location_for_duplicate_message(OrganizationIdentity(name="Acme")) == "same name and website"


@pytest.mark.asyncio
async def test_detector_raises_with_existing_record(create_org, session_factory):
    existing, _ = await create_org(
        OrganizationKind.HEALTH_SYSTEM,
        name="ACME HEALTH",
        website="http://www.acmehealth.org",
        headquarters_city="Boston",
        headquarters_state="MA",
    )

    async with session_factory() as db:
        detector = OrganizationDuplicateDetector(db)
        candidate = OrganizationIdentity(name="Acme Health", website="https://acmehealth.org/")

        with pytest.raises(DuplicateError) as excinfo:
            await detector.ensure_not_duplicate(OrganizationKind.HEALTH_SYSTEM, candidate)

        assert excinfo.value.message == 'Duplicate health system: "ACME HEALTH" already exists for Boston, MA.'
        assert excinfo.value.details["id"] == str(existing.id)

        # Kinds are checked separately.
        assert await detector.find_duplicate(OrganizationKind.COMPANY, candidate) is None
        # An update may keep its own identity.
        assert await detector.find_duplicate(OrganizationKind.HEALTH_SYSTEM, candidate, exclude_id=existing.id) is None
