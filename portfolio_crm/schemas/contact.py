"""
Schemas for contact resolution and role links.
"""

from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from portfolio_crm.models.enums import ContactRoleType
from portfolio_crm.schemas.base import RecordRead

MatchedBy = Literal["created", "email", "linkedin", "name"]


class ContactCandidate(BaseModel):
    """An incoming person description; only ``name`` is required."""

    name: str
    title: Optional[str] = None
    relationship_title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None

class RoleContactCandidate(ContactCandidate):
    """A candidate destined for a specific role on an organization."""

    role_type: ContactRoleType = ContactRoleType.OTHER


class ContactRead(RecordRead):
    name: str
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None


class ContactResolutionRead(BaseModel):
    contact: ContactRead
    matched_by: MatchedBy
    confidence: float
    was_created: bool
    explanation: List[str] = Field(default_factory=list)


class ContactLinkRead(RecordRead):
    contact_id: UUID
    organization_type: str
    organization_id: UUID
    role_type: str
    title: Optional[str] = None


class ContactLinkUpsertRequest(BaseModel):
    contact: ContactCandidate
    role_type: ContactRoleType = ContactRoleType.OTHER


class ContactReplaceRequest(BaseModel):
    """The complete, authoritative contact list for one organization."""

    contacts: List[RoleContactCandidate] = Field(default_factory=list)


class LinkedContactRead(BaseModel):
    link: ContactLinkRead
    resolution: ContactResolutionRead
