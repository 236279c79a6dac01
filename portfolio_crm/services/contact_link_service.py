"""
Contact role links.

Two write paths with deliberately different names:

- ``upsert_link``: one link, keyed by (contact, organization, role). Reapplying it
  only changes the title.
- ``replace_all_links``: destructive rebuild. Every link on the organization is
  deleted, then the supplied list is resolved and linked. The list must be the
  complete current set; anyone missing from it is detached.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.models.contact_link import ContactLink
from portfolio_crm.models.enums import ContactRoleType, OrganizationKind
from portfolio_crm.repositories.contact_link_repository import ContactLinkRepository
from portfolio_crm.schemas.contact import RoleContactCandidate
from portfolio_crm.services.contact_resolution_service import (
    ContactResolution,
    ContactResolutionService,
    MatchThresholds,
)
from portfolio_crm.utils.text_normalization import trim_or_none

logger = logging.getLogger(__name__)


@dataclass
class LinkedContact:
    link: ContactLink
    resolution: ContactResolution


def link_title_for(candidate: RoleContactCandidate) -> Optional[str]:
    """Relationship title wins over the person's global title."""
    return trim_or_none(candidate.relationship_title) or trim_or_none(candidate.title)


class ContactLinkService:
    def __init__(self, db: AsyncSession, thresholds: Optional[MatchThresholds] = None):
        self.db = db
        self.repo = ContactLinkRepository(db)
        self.resolver = ContactResolutionService(db, thresholds=thresholds)

    async def upsert_link(
        self,
        contact_id: UUID,
        organization_kind: OrganizationKind,
        organization_id: UUID,
        role_type: ContactRoleType,
        title: Optional[str] = None,
    ) -> ContactLink:
        return await self.repo.upsert(
            contact_id=contact_id,
            organization_type=OrganizationKind(organization_kind).value,
            organization_id=organization_id,
            role_type=ContactRoleType(role_type).value,
            title=trim_or_none(title),
        )

    async def resolve_and_link(
        self,
        organization_kind: OrganizationKind,
        organization_id: UUID,
        candidate: RoleContactCandidate,
    ) -> LinkedContact:
        """Resolve one person and upsert its link; other links are untouched."""
        resolution = await self.resolver.resolve_or_create(candidate)
        link = await self.upsert_link(
            contact_id=resolution.contact.id,
            organization_kind=organization_kind,
            organization_id=organization_id,
            role_type=candidate.role_type,
            title=link_title_for(candidate),
        )
        return LinkedContact(link=link, resolution=resolution)

    async def replace_all_links(
        self,
        organization_kind: OrganizationKind,
        organization_id: UUID,
        contacts: Sequence[RoleContactCandidate],
    ) -> List[LinkedContact]:
        kind = OrganizationKind(organization_kind)
        removed = await self.repo.delete_for_organization(kind.value, organization_id)

        linked: List[LinkedContact] = []
        for candidate in contacts:
            if not trim_or_none(candidate.name):
                logger.warning(
                    "contact_link_skipped_blank_name organization_type=%s organization_id=%s",
                    kind.value,
                    organization_id,
                )
                continue
            linked.append(await self.resolve_and_link(kind, organization_id, candidate))

        logger.info(
            "contact_links_replaced organization_type=%s organization_id=%s removed=%s linked=%s",
            kind.value,
            organization_id,
            removed,
            len(linked),
        )
        return linked

    async def list_links(self, organization_kind: OrganizationKind, organization_id: UUID) -> List[ContactLink]:
        return await self.repo.list_for_organization(OrganizationKind(organization_kind).value, organization_id)
