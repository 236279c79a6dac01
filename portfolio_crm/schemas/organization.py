"""
Schemas for organization intake, lookup and duplicate errors.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from portfolio_crm.models.enums import CompanyType, LeadSourceType, OrganizationKind
from portfolio_crm.schemas.base import RecordRead


class OrganizationCandidate(BaseModel):
    """A search result the user picked as "this is the organization I mean"."""

    name: str = Field(..., min_length=1)
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None
    summary: Optional[str] = None
    source_urls: List[str] = Field(default_factory=list)


class OrganizationFields(BaseModel):
    """
    Kind-specific business fields.

    Each organization kind reads only the fields it owns; the rest are ignored.
    """

    # Health systems
    is_limited_partner: Optional[bool] = None
    limited_partner_investment_usd: Optional[float] = Field(None, ge=0)
    is_alliance_member: Optional[bool] = None

    # Companies
    company_type: Optional[CompanyType] = None
    primary_category: Optional[str] = None
    primary_category_other: Optional[str] = None
    lead_source_type: Optional[LeadSourceType] = None
    lead_source_health_system_id: Optional[UUID] = None
    lead_source_other: Optional[str] = None
    lead_source_notes: Optional[str] = None
    description: Optional[str] = None

    # Co-investors
    is_seed_investor: Optional[bool] = None
    is_series_a_investor: Optional[bool] = None
    investment_notes: Optional[str] = None


class OrganizationDraft(OrganizationFields):
    """Manual create payload."""

    name: str = Field(..., min_length=1)
    legal_name: Optional[str] = None
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None
    research_notes: Optional[str] = None


class OrganizationPatch(BaseModel):
    """Partial update; only keys present in the payload are applied."""

    name: Optional[str] = None
    legal_name: Optional[str] = None
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None
    research_notes: Optional[str] = None
    investment_notes: Optional[str] = None
    description: Optional[str] = None
    lead_source_type: Optional[LeadSourceType] = None
    lead_source_health_system_id: Optional[UUID] = None
    lead_source_health_system_name: Optional[str] = None
    lead_source_other: Optional[str] = None
    lead_source_notes: Optional[str] = None


class VerifyOrganizationRequest(BaseModel):
    candidate: OrganizationCandidate
    fields: OrganizationFields = Field(default_factory=OrganizationFields)


class OrganizationRead(RecordRead):
    name: str
    legal_name: Optional[str] = None
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None
    research_status: str
    research_error: Optional[str] = None
    research_notes: Optional[str] = None
    research_updated_at: Optional[datetime] = None


class QueuedResearchRead(BaseModel):
    organization_type: OrganizationKind
    organization: OrganizationRead
    job_id: UUID


class EntityMatch(BaseModel):
    """An existing organization scored against a free-text name."""

    id: UUID
    entity_type: OrganizationKind
    name: str
    website: Optional[str] = None
    headquarters_city: Optional[str] = None
    headquarters_state: Optional[str] = None
    headquarters_country: Optional[str] = None
    confidence: float = Field(..., ge=0, le=1)
    reason: str
