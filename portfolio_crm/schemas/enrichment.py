"""
Schemas for the structured output of an enrichment provider.

A provider must return something that validates as ``OrganizationEnrichmentDraft``;
anything else is an enrichment failure, not an empty result.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from portfolio_crm.models.enums import ContactRoleType


class OrganizationSeed(BaseModel):
    """The minimal inputs a research job sends to the provider."""

    name: str
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None


class EnrichedPerson(BaseModel):
    name: str = Field(..., min_length=1)
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    url: Optional[str] = None
    role_type: Optional[ContactRoleType] = None
    relationship_title: Optional[str] = None


class EnrichedInvestment(BaseModel):
    portfolio_company_name: str = Field(..., min_length=1)
    investment_amount_usd: Optional[float] = Field(None, ge=0)
    investment_date: Optional[str] = None
    investment_stage: Optional[str] = None
    lead_partner_name: Optional[str] = None
    source_url: Optional[str] = None


class EnrichedOrganizationLink(BaseModel):
    """A company relationship named by research; resolved to an id by exact name."""

    name: str = Field(..., min_length=1)
    relationship_type: Optional[str] = None
    notes: Optional[str] = None
    investment_amount_usd: Optional[float] = Field(None, ge=0)
    ownership_percent: Optional[float] = Field(None, ge=0, le=100)


class OrganizationEnrichmentDraft(BaseModel):
    name: str = Field(..., min_length=1)
    legal_name: Optional[str] = None
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None
    research_notes: Optional[str] = None

    # Health systems
    net_patient_revenue_usd: Optional[float] = Field(None, ge=0)
    is_limited_partner: Optional[bool] = None
    limited_partner_investment_usd: Optional[float] = Field(None, ge=0)
    is_alliance_member: Optional[bool] = None
    has_innovation_team: Optional[bool] = None
    has_venture_team: Optional[bool] = None
    venture_team_summary: Optional[str] = None
    executives: List[EnrichedPerson] = Field(default_factory=list)
    venture_partners: List[EnrichedPerson] = Field(default_factory=list)

    # Companies
    company_type: Optional[str] = None
    primary_category: Optional[str] = None
    primary_category_other: Optional[str] = None
    lead_source_notes: Optional[str] = None
    description: Optional[str] = None
    contacts: List[EnrichedPerson] = Field(default_factory=list)
    health_system_links: List[EnrichedOrganizationLink] = Field(default_factory=list)
    co_investor_links: List[EnrichedOrganizationLink] = Field(default_factory=list)

    # Co-investors
    is_seed_investor: Optional[bool] = None
    is_series_a_investor: Optional[bool] = None
    investment_notes: Optional[str] = None
    partners: List[EnrichedPerson] = Field(default_factory=list)

    investments: List[EnrichedInvestment] = Field(default_factory=list)
