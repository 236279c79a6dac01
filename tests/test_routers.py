"""HTTP surface tests through the ASGI app with the database dependency overridden."""

import uuid

import httpx
import pytest
import pytest_asyncio

from portfolio_crm.core.dependencies import get_db, get_enrichment_provider, get_session_factory
from portfolio_crm.main import app
from portfolio_crm.services.research_providers import FixtureResearchProvider

FIXTURES = {
    "default": {},
    "by_name": {
        "acme health": {
            "headquarters_state": "MA",
            "executives": [{"name": "Robert Smith", "title": "CEO"}],
        }
    },
}


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_enrichment_provider] = lambda: FixtureResearchProvider(fixtures=FIXTURES)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health_reports_database(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["api_ok"] is True
    assert body["db_ok"] is True
    assert body["alembic_head_ok"] is False


@pytest.mark.asyncio
async def test_verify_then_process_research(client):
    candidate = {"candidate": {"name": "Acme Health", "website": "acmehealth.org", "headquarters_city": "Boston"}}

    created = await client.post("/organizations/HEALTH_SYSTEM/verify", json=candidate)
    assert created.status_code == 201
    organization_id = created.json()["organization"]["id"]
    assert created.json()["organization"]["research_status"] == "QUEUED"

    duplicate = await client.post(
        "/organizations/HEALTH_SYSTEM/verify",
        json={"candidate": {"name": "ACME HEALTH", "website": "https://www.acmehealth.org/"}},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "duplicate_organization"

    processed = await client.post("/organizations/HEALTH_SYSTEM/research-jobs/process", json={"max_jobs": 5})
    assert processed.status_code == 200
    assert processed.json() == {"queued_checked": 1, "completed": 1, "failed": 0}

    jobs = await client.get(f"/organizations/HEALTH_SYSTEM/{organization_id}/research-jobs")
    assert [job["status"] for job in jobs.json()] == ["COMPLETED"]

    contacts = await client.get(f"/organizations/HEALTH_SYSTEM/{organization_id}/contacts")
    assert [link["role_type"] for link in contacts.json()] == ["EXECUTIVE"]

    rerun = await client.post(f"/organizations/HEALTH_SYSTEM/{organization_id}/rerun-research")
    assert rerun.status_code == 200
    assert rerun.json()["organization"]["research_status"] == "QUEUED"


@pytest.mark.asyncio
async def test_manual_create_patch_and_search(client):
    created = await client.post("/organizations/COMPANY", json={"name": "Beta Bio", "website": "betabio.com"})
    assert created.status_code == 201
    organization_id = created.json()["id"]
    assert created.json()["research_status"] == "DRAFT"

    patched = await client.patch(f"/organizations/COMPANY/{organization_id}", json={"headquarters_city": "Austin"})
    assert patched.status_code == 200
    assert patched.json()["headquarters_city"] == "Austin"
    assert patched.json()["website"] == "betabio.com"

    found = await client.get("/organizations/COMPANY/search", params={"name": "beta bio"})
    assert found.status_code == 200
    assert found.json()[0]["id"] == organization_id

    missing = await client.patch(f"/organizations/COMPANY/{uuid.uuid4()}", json={"description": "x"})
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"

    bad_kind = await client.post("/organizations/SPACESHIP", json={"name": "Enterprise"})
    assert bad_kind.status_code == 422


@pytest.mark.asyncio
async def test_contact_endpoints(client):
    created = await client.post("/organizations/CO_INVESTOR", json={"name": "Summit Partners"})
    organization_id = created.json()["id"]
    base = f"/organizations/CO_INVESTOR/{organization_id}/contacts"

    resolved = await client.post("/contacts/resolve", json={"name": "Robert Smith", "email": "Rob@Summit.com"})
    assert resolved.status_code == 200
    assert resolved.json()["was_created"] is True

    upserted = await client.post(
        base,
        json={"contact": {"name": "Bob Smith", "title": "Partner"}, "role_type": "INVESTOR_PARTNER"},
    )
    assert upserted.status_code == 200
    assert upserted.json()["resolution"]["matched_by"] == "name"
    assert upserted.json()["resolution"]["contact"]["id"] == resolved.json()["contact"]["id"]

    replaced = await client.put(base, json={"contacts": [{"name": "Ann Lee", "role_type": "INVESTOR_PARTNER"}]})
    assert replaced.status_code == 200
    listed = await client.get(base)
    assert [link["contact_id"] for link in listed.json()] == [replaced.json()[0]["link"]["contact_id"]]

    blank = await client.post("/contacts/resolve", json={"name": "  "})
    assert blank.status_code == 422
    assert blank.json()["error"]["code"] == "validation_error"

    missing = await client.get(f"/organizations/CO_INVESTOR/{uuid.uuid4()}/contacts")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_narrative_compile_and_execute(client):
    compiled = await client.post(
        "/narrative/compile",
        json={
            "facts": {
                "createEntities": [{"entityType": "COMPANY", "name": "a company called Beta Bio"}],
                "companyCoInvestorLinks": [{"companyName": "Beta Bio", "coInvestorNames": ["Summit Partners"]}],
            }
        },
    )
    assert compiled.status_code == 200
    actions = compiled.json()["actions"]
    assert [action["kind"] for action in actions] == ["CREATE_ENTITY", "CREATE_ENTITY", "LINK_COMPANY_CO_INVESTOR"]

    executed = await client.post("/narrative/execute", json={"actions": actions})
    assert executed.status_code == 200
    assert executed.json()["summary"] == "Executed 3, failed 0, skipped 0."

    empty = await client.post("/narrative/execute", json={"actions": []})
    assert empty.status_code == 400
    assert empty.json()["error"]["code"] == "empty_plan"
