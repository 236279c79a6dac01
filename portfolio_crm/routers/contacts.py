"""
Contact resolution and role-link endpoints.

``PUT .../contacts`` is the destructive rebuild (the body is the complete list);
``POST .../contacts`` upserts a single link and leaves the others alone.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.core.dependencies import get_db
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.schemas.contact import (
    ContactCandidate,
    ContactLinkRead,
    ContactLinkUpsertRequest,
    ContactRead,
    ContactReplaceRequest,
    ContactResolutionRead,
    LinkedContactRead,
    RoleContactCandidate,
)
from portfolio_crm.services.contact_link_service import ContactLinkService, LinkedContact
from portfolio_crm.services.contact_resolution_service import ContactResolution, ContactResolutionService
from portfolio_crm.services.organization_service import OrganizationService

router = APIRouter(tags=["Contacts"])


def _resolution_read(resolution: ContactResolution) -> ContactResolutionRead:
    return ContactResolutionRead(
        contact=ContactRead.model_validate(resolution.contact),
        matched_by=resolution.matched_by,
        confidence=resolution.confidence,
        was_created=resolution.was_created,
        explanation=resolution.explanation,
    )


def _linked_read(linked: LinkedContact) -> LinkedContactRead:
    return LinkedContactRead(
        link=ContactLinkRead.model_validate(linked.link),
        resolution=_resolution_read(linked.resolution),
    )


@router.post("/contacts/resolve", response_model=ContactResolutionRead)
async def resolve_contact(payload: ContactCandidate, db: AsyncSession = Depends(get_db)):
    """Find-or-create one person; matches hydrate missing fields only."""
    resolution = await ContactResolutionService(db).resolve_or_create(payload)
    return _resolution_read(resolution)


@router.get("/organizations/{kind}/{organization_id}/contacts", response_model=List[ContactLinkRead])
async def list_contacts(kind: OrganizationKind, organization_id: UUID, db: AsyncSession = Depends(get_db)):
    await OrganizationService(db).get_organization(kind, organization_id)
    return await ContactLinkService(db).list_links(kind, organization_id)


@router.put("/organizations/{kind}/{organization_id}/contacts", response_model=List[LinkedContactRead])
async def replace_contacts(
    kind: OrganizationKind,
    organization_id: UUID,
    payload: ContactReplaceRequest,
    db: AsyncSession = Depends(get_db),
):
    await OrganizationService(db).get_organization(kind, organization_id)
    linked = await ContactLinkService(db).replace_all_links(kind, organization_id, payload.contacts)
    return [_linked_read(entry) for entry in linked]


@router.post("/organizations/{kind}/{organization_id}/contacts", response_model=LinkedContactRead)
async def upsert_contact(
    kind: OrganizationKind,
    organization_id: UUID,
    payload: ContactLinkUpsertRequest,
    db: AsyncSession = Depends(get_db),
):
    await OrganizationService(db).get_organization(kind, organization_id)
    candidate = RoleContactCandidate(**payload.contact.model_dump(), role_type=payload.role_type)
    linked = await ContactLinkService(db).resolve_and_link(kind, organization_id, candidate)
    return _linked_read(linked)
