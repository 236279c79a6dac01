"""
Per-kind organization adapters.

Health systems, companies and co-investors share one intake, dedup and
research pipeline. Everything that differs between them (model class, owned
business fields, research-derived children, the role given to researched
contacts) is declared here once.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.models.co_investor import CoInvestor, CoInvestorInvestment, CoInvestorPartner
from portfolio_crm.models.company import Company, CompanyCoInvestorLink, CompanyHealthSystemLink
from portfolio_crm.models.enums import (
    CompanyCoInvestorRelationship,
    CompanyHealthSystemRelationship,
    CompanyType,
    ContactRoleType,
    LinkSource,
    OrganizationKind,
)
from portfolio_crm.models.health_system import (
    Executive,
    HealthSystem,
    HealthSystemInvestment,
    VenturePartner,
)
from portfolio_crm.repositories.organization_repository import OrganizationRepository
from portfolio_crm.schemas.contact import RoleContactCandidate
from portfolio_crm.schemas.enrichment import EnrichedPerson, OrganizationEnrichmentDraft
from portfolio_crm.schemas.organization import OrganizationFields
from portfolio_crm.utils.text_normalization import trim_or_none

ChildWriter = Callable[[AsyncSession, Any, OrganizationEnrichmentDraft], Awaitable[int]]
ChildClearer = Callable[[AsyncSession, UUID], Awaitable[None]]
ContactExtractor = Callable[[OrganizationEnrichmentDraft], List[RoleContactCandidate]]

# Copied from an enrichment draft onto every organization kind when non-empty.
COMMON_ENRICHMENT_FIELDS = (
    "name",
    "legal_name",
    "website",
    "headquarters_city",
    "headquarters_state",
    "headquarters_country",
    "research_notes",
)


@dataclass(frozen=True)
class OrganizationAdapter:
    kind: OrganizationKind
    model: Type[Any]
    label: str
    business_fields: Tuple[str, ...]
    enrichment_fields: Tuple[str, ...]
    sticky_flags: Tuple[str, ...]
    clear_children: ChildClearer
    write_children: ChildWriter
    enrichment_contacts: ContactExtractor


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value.strip()
    return value


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    text = trim_or_none(value)
    if not text:
        return None
    try:
        return datetime.fromisoformat(text[:10]).date()
    except ValueError:
        return None


def apply_business_fields(adapter: OrganizationAdapter, organization: Any, fields: OrganizationFields) -> None:
    """Copy the kind-specific fields this adapter owns; unset fields are left alone."""
    for field_name in adapter.business_fields:
        value = getattr(fields, field_name, None)
        if value is None:
            continue
        setattr(organization, field_name, _plain(value))

    if adapter.kind == OrganizationKind.HEALTH_SYSTEM and not organization.is_limited_partner:
        organization.limited_partner_investment_usd = None


def apply_enrichment_fields(
    adapter: OrganizationAdapter,
    organization: Any,
    draft: OrganizationEnrichmentDraft,
) -> List[str]:
    """
    Overwrite organization fields with non-empty researched values.

    Empty or missing researched values never clear an existing value. Sticky
    flags can be switched on by research but never off. Returns the names of
    the fields that changed.
    """
    changed: List[str] = []
    for field_name in COMMON_ENRICHMENT_FIELDS + adapter.enrichment_fields:
        value = getattr(draft, field_name, None)
        if is_empty_value(value):
            continue
        value = _plain(value)
        if getattr(organization, field_name) != value:
            setattr(organization, field_name, value)
            changed.append(field_name)

    for flag in adapter.sticky_flags:
        if getattr(draft, flag, None) and not getattr(organization, flag):
            setattr(organization, flag, True)
            changed.append(flag)

    if adapter.kind == OrganizationKind.HEALTH_SYSTEM and not organization.is_limited_partner:
        organization.limited_partner_investment_usd = None

    if adapter.kind == OrganizationKind.COMPANY and draft.company_type:
        try:
            company_type = CompanyType(draft.company_type.strip().upper()).value
        except ValueError:
            company_type = None
        if company_type and organization.company_type != company_type:
            organization.company_type = company_type
            changed.append("company_type")

    return changed


def _people_as_contacts(
    people: List[EnrichedPerson],
    role_type: ContactRoleType,
    honour_person_role: bool = False,
) -> List[RoleContactCandidate]:
    contacts = []
    for person in people:
        role = person.role_type if honour_person_role and person.role_type else role_type
        contacts.append(
            RoleContactCandidate(
                name=person.name,
                title=trim_or_none(person.title),
                relationship_title=trim_or_none(person.relationship_title),
                email=trim_or_none(person.email),
                phone=trim_or_none(person.phone),
                linkedin_url=trim_or_none(person.url),
                role_type=role,
            )
        )
    return contacts


# --- Health systems ---


async def _clear_health_system_children(db: AsyncSession, organization_id: UUID) -> None:
    await db.execute(delete(Executive).where(Executive.health_system_id == organization_id))
    await db.execute(delete(VenturePartner).where(VenturePartner.health_system_id == organization_id))
    await db.execute(delete(HealthSystemInvestment).where(HealthSystemInvestment.health_system_id == organization_id))


async def _write_health_system_children(
    db: AsyncSession,
    organization: HealthSystem,
    draft: OrganizationEnrichmentDraft,
) -> int:
    rows: List[Any] = []
    for entry in draft.executives:
        rows.append(
            Executive(
                health_system_id=organization.id,
                name=entry.name.strip(),
                title=trim_or_none(entry.title),
                linkedin_url=trim_or_none(entry.url),
            )
        )
    for entry in draft.venture_partners:
        rows.append(
            VenturePartner(
                health_system_id=organization.id,
                name=entry.name.strip(),
                title=trim_or_none(entry.title),
                profile_url=trim_or_none(entry.url),
            )
        )
    for entry in draft.investments:
        rows.append(
            HealthSystemInvestment(
                health_system_id=organization.id,
                portfolio_company_name=entry.portfolio_company_name.strip(),
                investment_amount_usd=entry.investment_amount_usd,
                investment_date=parse_optional_date(entry.investment_date),
                lead_partner_name=trim_or_none(entry.lead_partner_name),
                source_url=trim_or_none(entry.source_url),
            )
        )
    db.add_all(rows)
    await db.flush()
    return len(rows)


def _health_system_contacts(draft: OrganizationEnrichmentDraft) -> List[RoleContactCandidate]:
    return _people_as_contacts(draft.executives, ContactRoleType.EXECUTIVE) + _people_as_contacts(
        draft.venture_partners, ContactRoleType.VENTURE_PARTNER
    )


# --- Companies ---


async def _clear_company_children(db: AsyncSession, organization_id: UUID) -> None:
    await db.execute(
        delete(CompanyHealthSystemLink).where(
            CompanyHealthSystemLink.company_id == organization_id,
            CompanyHealthSystemLink.source == LinkSource.RESEARCH.value,
        )
    )
    await db.execute(
        delete(CompanyCoInvestorLink).where(
            CompanyCoInvestorLink.company_id == organization_id,
            CompanyCoInvestorLink.source == LinkSource.RESEARCH.value,
        )
    )


def _parse_relationship(value: Optional[str], allowed: Type[Enum], fallback: Enum) -> str:
    normalized = (value or "").strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return allowed(normalized).value
    except ValueError:
        return fallback.value


async def _write_company_children(
    db: AsyncSession,
    organization: Company,
    draft: OrganizationEnrichmentDraft,
) -> int:
    """Researched links name their counterparty; only exact existing names are linked."""
    health_systems = OrganizationRepository(db, HealthSystem)
    co_investors = OrganizationRepository(db, CoInvestor)
    rows: List[Any] = []

    for entry in draft.health_system_links:
        matches = await health_systems.list_by_name_ci(entry.name)
        if not matches:
            continue
        rows.append(
            CompanyHealthSystemLink(
                company_id=organization.id,
                health_system_id=matches[0].id,
                relationship_type=_parse_relationship(
                    entry.relationship_type,
                    CompanyHealthSystemRelationship,
                    CompanyHealthSystemRelationship.OTHER,
                ),
                notes=trim_or_none(entry.notes),
                investment_amount_usd=entry.investment_amount_usd,
                ownership_percent=entry.ownership_percent,
                source=LinkSource.RESEARCH.value,
            )
        )

    for entry in draft.co_investor_links:
        matches = await co_investors.list_by_name_ci(entry.name)
        if not matches:
            continue
        rows.append(
            CompanyCoInvestorLink(
                company_id=organization.id,
                co_investor_id=matches[0].id,
                relationship_type=_parse_relationship(
                    entry.relationship_type,
                    CompanyCoInvestorRelationship,
                    CompanyCoInvestorRelationship.OTHER,
                ),
                notes=trim_or_none(entry.notes),
                investment_amount_usd=entry.investment_amount_usd,
                source=LinkSource.RESEARCH.value,
            )
        )

    db.add_all(rows)
    await db.flush()
    return len(rows)


def _company_contacts(draft: OrganizationEnrichmentDraft) -> List[RoleContactCandidate]:
    return _people_as_contacts(draft.contacts, ContactRoleType.COMPANY_CONTACT, honour_person_role=True)


# --- Co-investors ---


async def _clear_co_investor_children(db: AsyncSession, organization_id: UUID) -> None:
    await db.execute(delete(CoInvestorPartner).where(CoInvestorPartner.co_investor_id == organization_id))
    await db.execute(delete(CoInvestorInvestment).where(CoInvestorInvestment.co_investor_id == organization_id))


async def _write_co_investor_children(
    db: AsyncSession,
    organization: CoInvestor,
    draft: OrganizationEnrichmentDraft,
) -> int:
    rows: List[Any] = []
    for entry in draft.partners:
        rows.append(
            CoInvestorPartner(
                co_investor_id=organization.id,
                name=entry.name.strip(),
                title=trim_or_none(entry.title),
                profile_url=trim_or_none(entry.url),
            )
        )
    for entry in draft.investments:
        rows.append(
            CoInvestorInvestment(
                co_investor_id=organization.id,
                portfolio_company_name=entry.portfolio_company_name.strip(),
                investment_amount_usd=entry.investment_amount_usd,
                investment_date=parse_optional_date(entry.investment_date),
                investment_stage=trim_or_none(entry.investment_stage),
                lead_partner_name=trim_or_none(entry.lead_partner_name),
                source_url=trim_or_none(entry.source_url),
            )
        )
    db.add_all(rows)
    await db.flush()
    return len(rows)


def _co_investor_contacts(draft: OrganizationEnrichmentDraft) -> List[RoleContactCandidate]:
    return _people_as_contacts(draft.partners, ContactRoleType.INVESTOR_PARTNER)


ADAPTERS: Dict[OrganizationKind, OrganizationAdapter] = {
    OrganizationKind.HEALTH_SYSTEM: OrganizationAdapter(
        kind=OrganizationKind.HEALTH_SYSTEM,
        model=HealthSystem,
        label="health system",
        business_fields=("is_limited_partner", "limited_partner_investment_usd", "is_alliance_member"),
        enrichment_fields=(
            "net_patient_revenue_usd",
            "limited_partner_investment_usd",
            "has_innovation_team",
            "has_venture_team",
            "venture_team_summary",
        ),
        sticky_flags=("is_limited_partner", "is_alliance_member"),
        clear_children=_clear_health_system_children,
        write_children=_write_health_system_children,
        enrichment_contacts=_health_system_contacts,
    ),
    OrganizationKind.COMPANY: OrganizationAdapter(
        kind=OrganizationKind.COMPANY,
        model=Company,
        label="company",
        business_fields=(
            "company_type",
            "primary_category",
            "primary_category_other",
            "lead_source_type",
            "lead_source_health_system_id",
            "lead_source_other",
            "lead_source_notes",
            "description",
        ),
        enrichment_fields=("primary_category", "primary_category_other", "lead_source_notes", "description"),
        sticky_flags=(),
        clear_children=_clear_company_children,
        write_children=_write_company_children,
        enrichment_contacts=_company_contacts,
    ),
    OrganizationKind.CO_INVESTOR: OrganizationAdapter(
        kind=OrganizationKind.CO_INVESTOR,
        model=CoInvestor,
        label="co-investor",
        business_fields=("is_seed_investor", "is_series_a_investor", "investment_notes"),
        enrichment_fields=("investment_notes",),
        sticky_flags=("is_seed_investor", "is_series_a_investor"),
        clear_children=_clear_co_investor_children,
        write_children=_write_co_investor_children,
        enrichment_contacts=_co_investor_contacts,
    ),
}


def get_adapter(kind: OrganizationKind | str) -> OrganizationAdapter:
    return ADAPTERS[OrganizationKind(kind)]
