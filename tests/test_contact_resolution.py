"""Contact identity resolution against an in-memory database."""

import pytest

from portfolio_crm.errors import ValidationError
from portfolio_crm.schemas.contact import ContactCandidate
from portfolio_crm.services.contact_resolution_service import (
    ContactResolutionService,
    MatchThresholds,
    score_name_match,
    score_title_match,
)
from portfolio_crm.utils.text_normalization import parse_name


@pytest.mark.unit
def test_name_rules_in_priority_order():
    assert score_name_match(parse_name("Jane Doe"), "jane  doe") == (0.95, "full_name")
    assert score_name_match(parse_name("Bob Smith"), "Robert Smith") == (0.88, "last_name+canonical_first_name")
    assert score_name_match(parse_name("J Smith"), "John Smith") == (0.80, "last_name+first_initial")
    assert score_name_match(parse_name("Bob Smith"), "Robert") == (
        0.74,
        "canonical_first_name+existing_without_last_name",
    )
    assert score_name_match(parse_name("Bob Smith"), "Robert Jones") == (0.70, "canonical_first_name")
    assert score_name_match(parse_name("Alice Smith"), "Zoe Jones") == (0.0, "no_match")


@pytest.mark.unit
def test_title_bonus():
    assert score_title_match("Chief Executive Officer", "chief executive officer") == (0.08, "title_exact")
    assert score_title_match("Chief Medical Officer", "Chief Executive Officer") == (0.05, "title_overlap")
    assert score_title_match("Partner", None) == (0.0, None)


@pytest.mark.asyncio
async def test_nickname_matches_both_directions(db_session):
    service = ContactResolutionService(db_session, thresholds=MatchThresholds())

    first = await service.resolve_or_create(ContactCandidate(name="Robert Smith"))
    assert first.was_created

    nickname = await service.resolve_or_create(ContactCandidate(name="Bob Smith"))
    assert not nickname.was_created
    assert nickname.matched_by == "name"
    assert nickname.contact.id == first.contact.id
    assert nickname.confidence >= 0.88

    bill = await service.resolve_or_create(ContactCandidate(name="Bill Jones"))
    william = await service.resolve_or_create(ContactCandidate(name="William Jones"))
    assert william.contact.id == bill.contact.id
    assert william.confidence >= 0.88


@pytest.mark.asyncio
async def test_match_hydrates_missing_fields_without_overwriting(db_session):
    service = ContactResolutionService(db_session, thresholds=MatchThresholds())
    created = await service.resolve_or_create(ContactCandidate(name="Jane Doe", title="CEO"))

    matched = await service.resolve_or_create(
        ContactCandidate(name="Jane Doe", title="CFO", email="JANE@Example.com", phone=" 555-0100 ")
    )

    assert matched.contact.id == created.contact.id
    assert matched.contact.title == "CEO"
    assert matched.contact.email == "jane@example.com"
    assert matched.contact.phone == "555-0100"
    assert any(line.startswith("hydrated:") for line in matched.explanation)


@pytest.mark.asyncio
async def test_notes_are_stored_and_only_hydrated_when_missing(db_session):
    service = ContactResolutionService(db_session, thresholds=MatchThresholds())
    created = await service.resolve_or_create(ContactCandidate(name="Ann Lee", notes="  Met at HLTH  "))
    assert created.contact.notes == "Met at HLTH"

    matched = await service.resolve_or_create(ContactCandidate(name="Ann Lee", notes="Board observer"))
    assert matched.contact.id == created.contact.id
    assert matched.contact.notes == "Met at HLTH"

    blank = await service.resolve_or_create(ContactCandidate(name="Raj Patel"))
    hydrated = await service.resolve_or_create(ContactCandidate(name="Raj Patel", notes="Intro via Summit"))
    assert hydrated.contact.id == blank.contact.id
    assert hydrated.contact.notes == "Intro via Summit"


@pytest.mark.asyncio
async def test_identity_beats_name_mismatch(db_session):
    service = ContactResolutionService(db_session, thresholds=MatchThresholds())
    created = await service.resolve_or_create(
        ContactCandidate(name="Jane Doe", email="jane@example.com", linkedin_url="linkedin.com/in/janedoe")
    )

    by_email = await service.resolve_or_create(ContactCandidate(name="J. Smith-Doe", email=" Jane@Example.com"))
    assert by_email.contact.id == created.contact.id
    assert by_email.matched_by == "email"
    assert by_email.confidence == 0.99
    assert by_email.contact.name == "Jane Doe"

    by_linkedin = await service.resolve_or_create(
        ContactCandidate(name="Someone Else", linkedin_url="https://www.linkedin.com/in/janedoe/")
    )
    assert by_linkedin.contact.id == created.contact.id
    assert by_linkedin.matched_by == "linkedin"


@pytest.mark.asyncio
async def test_weak_name_match_creates_new_contact(db_session):
    service = ContactResolutionService(db_session, thresholds=MatchThresholds())
    first = await service.resolve_or_create(ContactCandidate(name="Robert Jones"))

    other = await service.resolve_or_create(ContactCandidate(name="Bob Smith"))

    assert other.was_created
    assert other.contact.id != first.contact.id


@pytest.mark.asyncio
async def test_blank_name_is_rejected(db_session):
    service = ContactResolutionService(db_session, thresholds=MatchThresholds())
    with pytest.raises(ValidationError):
        await service.resolve_or_create(ContactCandidate(name="   "))
