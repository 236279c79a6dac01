"""
Organization duplicate detection.

One predicate serves every organization kind. It only ever runs against rows
whose name already equals the candidate's case-insensitively; it is never a
table scan.

Order of evidence:
1. Normalized names must be equal.
2. Equal normalized websites -> duplicate, regardless of location.
3. Otherwise every location field present on either side must match exactly.
   No comparable location field at all -> not a duplicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.errors import DuplicateError
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.repositories.organization_repository import OrganizationRepository
from portfolio_crm.services.organization_registry import get_adapter
from portfolio_crm.utils.text_normalization import normalize_text, website_comparison_key

logger = logging.getLogger(__name__)


class ComparableOrganization(Protocol):
    name: str
    website: Optional[str]
    headquarters_city: Optional[str]
    headquarters_state: Optional[str]
    headquarters_country: Optional[str]


@dataclass(frozen=True)
class OrganizationIdentity:
    """Plain comparable shape for candidates that are not ORM rows."""

    name: str
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None

    @classmethod
    def from_object(cls, value: Any) -> "OrganizationIdentity":
        return cls(
            name=getattr(value, "name", "") or "",
            website=getattr(value, "website", None),
            headquarters_city=getattr(value, "headquarters_city", None),
            headquarters_state=getattr(value, "headquarters_state", None),
            headquarters_country=getattr(value, "headquarters_country", None),
        )


def is_duplicate(existing: ComparableOrganization, candidate: ComparableOrganization) -> bool:
    candidate_name = normalize_text(candidate.name)
    existing_name = normalize_text(existing.name)
    if not candidate_name or candidate_name != existing_name:
        return False

    candidate_website = website_comparison_key(candidate.website)
    existing_website = website_comparison_key(existing.website)
    if candidate_website and existing_website and candidate_website == existing_website:
        return True

    location_pairs = [
        (normalize_text(candidate.headquarters_city), normalize_text(existing.headquarters_city)),
        (normalize_text(candidate.headquarters_state), normalize_text(existing.headquarters_state)),
        (normalize_text(candidate.headquarters_country), normalize_text(existing.headquarters_country)),
    ]
    comparable = [(left, right) for left, right in location_pairs if left or right]
    if not comparable:
        return False

    return all(left == right for left, right in comparable)


def format_location_for_duplicate_message(organization: ComparableOrganization) -> str:
    parts = [
        organization.headquarters_city,
        organization.headquarters_state,
        organization.headquarters_country,
    ]
    formatted = ", ".join(part for part in parts if part)
    return formatted or "same name and website"


class OrganizationDuplicateDetector:
    """Runs the name prefilter and the duplicate predicate inside the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_duplicate(
        self,
        kind: OrganizationKind,
        candidate: ComparableOrganization,
        exclude_id: Any = None,
    ) -> Optional[Any]:
        adapter = get_adapter(kind)
        repo = OrganizationRepository(self.db, adapter.model)
        same_name = await repo.list_by_name_ci(candidate.name)
        for existing in same_name:
            if exclude_id is not None and existing.id == exclude_id:
                continue
            if is_duplicate(existing, candidate):
                return existing
        return None

    async def ensure_not_duplicate(
        self,
        kind: OrganizationKind,
        candidate: ComparableOrganization,
        exclude_id: Any = None,
    ) -> None:
        """Raise ``DuplicateError`` naming the colliding record and its location."""
        duplicate = await self.find_duplicate(kind, candidate, exclude_id=exclude_id)
        if duplicate is None:
            return

        adapter = get_adapter(kind)
        location = format_location_for_duplicate_message(duplicate)
        logger.info(
            "duplicate_organization_rejected kind=%s name=%r existing_id=%s",
            kind.value,
            candidate.name,
            duplicate.id,
        )
        raise DuplicateError(
            f'Duplicate {adapter.label}: "{duplicate.name}" already exists for {location}.',
            details={
                "organization_type": kind.value,
                "id": str(duplicate.id),
                "name": duplicate.name,
                "location": location,
                "website": duplicate.website,
            },
        )
