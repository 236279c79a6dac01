"""Narrative plans executed against an in-memory database."""

import uuid

import pytest
from sqlalchemy import select

from portfolio_crm.models.company import Company, CompanyCoInvestorLink
from portfolio_crm.models.contact_link import ContactLink
from portfolio_crm.models.enums import LinkSource, OrganizationKind
from portfolio_crm.schemas.narrative import (
    CreateEntityAction,
    CreateSelection,
    LinkCompanyCoInvestorAction,
    UpdateEntityAction,
)
from portfolio_crm.services.narrative_compiler import compile_semantic_facts
from portfolio_crm.services.narrative_executor import (
    NOT_SELECTED_MESSAGE,
    NarrativeExecutor,
    get_dependency_action_ids,
    order_actions_for_execution,
)

FACTS = {
    "create_entities": [{"entity_type": "COMPANY", "name": "Beta Bio"}],
    "company_co_investor_links": [{"company_name": "Beta Bio", "co_investor_names": ["Summit Partners"]}],
    "add_contacts": [
        {
            "parent_type": "COMPANY",
            "parent_name": "Beta Bio",
            "role_type": "COMPANY_CONTACT",
            "contact": {"name": "Ann Lee", "title": "CEO"},
        }
    ],
}


def _status_by_id(report):
    return {result.action_id: result.status for result in report.results}


@pytest.mark.unit
def test_dependants_run_after_their_creates():
    link = LinkCompanyCoInvestorAction(
        id="link-1",
        company_name="Beta Bio",
        co_investor_name="Summit Partners",
        company_create_action_id="create-2",
        co_investor_create_action_id="create-3",
    )
    company = CreateEntityAction(id="create-2", entity_type=OrganizationKind.COMPANY, draft={"name": "Beta Bio"})
    co_investor = CreateEntityAction(
        id="create-3", entity_type=OrganizationKind.CO_INVESTOR, draft={"name": "Summit Partners"}
    )
    unrelated = UpdateEntityAction(id="update-4", entity_type=OrganizationKind.COMPANY, target_name="Gamma")

    ordered = order_actions_for_execution([link, company, co_investor, unrelated])

    assert [action.id for action in ordered] == ["create-2", "create-3", "link-1", "update-4"]


@pytest.mark.unit
def test_selected_record_removes_dependency():
    update = UpdateEntityAction(
        id="update-1",
        entity_type=OrganizationKind.COMPANY,
        target_name="Beta Bio",
        linked_create_action_id="create-1",
    )
    assert get_dependency_action_ids(update) == ["create-1"]
    selected = update.model_copy(update={"selected_target_id": uuid.uuid4()})
    assert get_dependency_action_ids(selected) == []


@pytest.mark.unit
def test_cycles_are_kept_in_emission_order():
    first = UpdateEntityAction(
        id="a", entity_type=OrganizationKind.COMPANY, target_name="A", linked_create_action_id="b"
    )
    second = UpdateEntityAction(
        id="b", entity_type=OrganizationKind.COMPANY, target_name="B", linked_create_action_id="a"
    )
    assert [action.id for action in order_actions_for_execution([first, second])] == ["a", "b"]


@pytest.mark.asyncio
async def test_full_plan_creates_links_and_contacts(session_factory):
    compilation = compile_semantic_facts(FACTS)

    report = await NarrativeExecutor(session_factory=session_factory).execute(compilation.actions)

    assert report.summary == "Executed 4, failed 0, skipped 0."
    assert [result.action_id for result in report.results] == [action.id for action in compilation.actions]
    assert sorted(entity.name for entity in report.created_entities) == ["Beta Bio", "Summit Partners"]

    async with session_factory() as db:
        company = (await db.execute(select(Company).where(Company.name == "Beta Bio"))).scalar_one()
        links = (
            await db.execute(select(CompanyCoInvestorLink).where(CompanyCoInvestorLink.company_id == company.id))
        ).scalars().all()
        assert len(links) == 1
        assert links[0].source == LinkSource.MANUAL.value

        contact_links = (
            await db.execute(select(ContactLink).where(ContactLink.organization_id == company.id))
        ).scalars().all()
        assert [(link.role_type, link.title) for link in contact_links] == [("COMPANY_CONTACT", "CEO")]


@pytest.mark.asyncio
async def test_excluded_create_blocks_its_dependants(session_factory):
    compilation = compile_semantic_facts(FACTS)
    company_create = compilation.actions[0]
    actions = [company_create.model_copy(update={"include": False})] + list(compilation.actions[1:])

    report = await NarrativeExecutor(session_factory=session_factory).execute(actions)
    statuses = _status_by_id(report)

    assert statuses[company_create.id] == "SKIPPED"
    assert report.results[0].message == NOT_SELECTED_MESSAGE
    link_result = next(result for result in report.results if result.kind == "LINK_COMPANY_CO_INVESTOR")
    assert link_result.status == "FAILED"
    assert link_result.message == (
        f"Cannot link Beta Bio and Summit Partners because dependency {company_create.id} "
        "did not execute successfully."
    )
    contact_result = next(result for result in report.results if result.kind == "ADD_CONTACT")
    assert contact_result.status == "FAILED"
    assert report.summary == "Executed 1, failed 2, skipped 1."

    async with session_factory() as db:
        assert (await db.execute(select(Company))).scalars().all() == []


@pytest.mark.asyncio
async def test_failed_create_does_not_stop_independent_actions(create_org, session_factory):
    await create_org(OrganizationKind.COMPANY, name="Beta Bio", website="betabio.com")
    plan = [
        CreateEntityAction(
            id="create-1",
            entity_type=OrganizationKind.COMPANY,
            draft={"name": "beta bio", "website": "https://www.betabio.com/"},
        ),
        UpdateEntityAction(
            id="update-2",
            entity_type=OrganizationKind.COMPANY,
            target_name="Beta Bio",
            patch={"description": "Lab automation"},
            linked_create_action_id="create-1",
        ),
        UpdateEntityAction(
            id="update-3",
            entity_type=OrganizationKind.COMPANY,
            target_name="Beta Bio",
            patch={"research_notes": "Met at JPM"},
        ),
        UpdateEntityAction(id="update-4", entity_type=OrganizationKind.COMPANY, target_name="Nowhere Labs"),
    ]

    report = await NarrativeExecutor(session_factory=session_factory).execute(plan)
    statuses = _status_by_id(report)

    assert statuses == {"create-1": "FAILED", "update-2": "FAILED", "update-3": "EXECUTED", "update-4": "FAILED"}
    assert report.results[0].message.startswith('Duplicate company: "Beta Bio" already exists')
    assert report.results[3].message == "No company named Nowhere Labs was found to update."

    async with session_factory() as db:
        company = (await db.execute(select(Company))).scalar_one()
        assert company.research_notes == "Met at JPM"
        assert company.description is None


@pytest.mark.asyncio
async def test_use_existing_selection_feeds_dependants(create_org, session_factory):
    existing, _ = await create_org(OrganizationKind.CO_INVESTOR, name="Summit Partners")
    compilation = compile_semantic_facts(
        {
            "create_entities": [{"entity_type": "CO_INVESTOR", "name": "Summit Partners"}],
            "update_entities": [
                {"entity_type": "CO_INVESTOR", "target_name": "Summit Partners", "patch": {"investment_notes": "Seed lead"}},
            ],
        }
    )
    create, update = compilation.actions
    create = create.model_copy(update={"selection": CreateSelection(mode="USE_EXISTING", existing_id=existing.id)})

    report = await NarrativeExecutor(session_factory=session_factory).execute([create, update])

    assert report.summary == "Executed 2, failed 0, skipped 0."
    assert report.results[0].message == "Using existing co-investor Summit Partners."
    assert report.created_entities[0].id == existing.id
    assert report.created_entities[0].created is False
