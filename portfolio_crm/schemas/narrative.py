"""
Schemas for narrative facts, compiled actions and execution reports.

Facts carry only human-readable names. Actions reference each other through
synthetic action ids (``*_create_action_id``) until the executor substitutes
real database ids.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portfolio_crm.models.enums import (
    CompanyCoInvestorRelationship,
    ContactRoleType,
    OrganizationKind,
)
from portfolio_crm.schemas.contact import ContactCandidate
from portfolio_crm.schemas.organization import EntityMatch, OrganizationDraft, OrganizationPatch

ActionKind = Literal["CREATE_ENTITY", "UPDATE_ENTITY", "ADD_CONTACT", "LINK_COMPANY_CO_INVESTOR"]


# --- Facts (compiler input) ---


class FactModel(BaseModel):
    """Facts arrive from outside in either snake_case or camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateEntityFact(FactModel):
    entity_type: OrganizationKind
    name: str = Field(..., min_length=1)
    notes: Optional[str] = None


class UpdateEntityFact(FactModel):
    entity_type: OrganizationKind
    target_name: str = Field(..., min_length=1)
    patch: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None


class ContactFactPayload(FactModel):
    name: str = Field(..., min_length=1)
    title: Optional[str] = None
    relationship_title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None


class AddContactFact(FactModel):
    parent_type: OrganizationKind
    parent_name: str = Field(..., min_length=1)
    role_type: Optional[str] = None
    contact: ContactFactPayload


class CompanyCoInvestorLinkFact(FactModel):
    company_name: str = Field(..., min_length=1)
    co_investor_names: List[str] = Field(..., min_length=1)
    relationship_type: Optional[str] = None
    notes: Optional[str] = None


class CompanyLeadSourceFact(FactModel):
    company_name: str = Field(..., min_length=1)
    health_system_name: str = Field(..., min_length=1)
    notes: Optional[str] = None


class SemanticFacts(FactModel):
    create_entities: List[CreateEntityFact] = Field(default_factory=list)
    update_entities: List[UpdateEntityFact] = Field(default_factory=list)
    add_contacts: List[AddContactFact] = Field(default_factory=list)
    company_co_investor_links: List[CompanyCoInvestorLinkFact] = Field(default_factory=list)
    company_lead_source_assignments: List[CompanyLeadSourceFact] = Field(default_factory=list)


# --- Actions (compiler output / executor input) ---


class BaseAction(BaseModel):
    id: str = Field(..., min_length=1)
    include: bool = True
    rationale: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0, le=1)
    issues: List[str] = Field(default_factory=list)


class CreateSelection(BaseModel):
    mode: Literal["CREATE_MANUAL", "USE_EXISTING"] = "CREATE_MANUAL"
    existing_id: Optional[UUID] = None
    queue_research: bool = True


class CreateEntityAction(BaseAction):
    kind: Literal["CREATE_ENTITY"] = "CREATE_ENTITY"
    entity_type: OrganizationKind
    draft: OrganizationDraft
    existing_matches: List[EntityMatch] = Field(default_factory=list)
    selection: CreateSelection = Field(default_factory=CreateSelection)


class UpdateEntityAction(BaseAction):
    kind: Literal["UPDATE_ENTITY"] = "UPDATE_ENTITY"
    entity_type: OrganizationKind
    target_name: str = Field(..., min_length=1)
    patch: OrganizationPatch = Field(default_factory=OrganizationPatch)
    target_matches: List[EntityMatch] = Field(default_factory=list)
    selected_target_id: Optional[UUID] = None
    linked_create_action_id: Optional[str] = None


class AddContactAction(BaseAction):
    kind: Literal["ADD_CONTACT"] = "ADD_CONTACT"
    parent_type: OrganizationKind
    parent_name: str = Field(..., min_length=1)
    role_type: ContactRoleType = ContactRoleType.OTHER
    contact: ContactCandidate
    parent_matches: List[EntityMatch] = Field(default_factory=list)
    selected_parent_id: Optional[UUID] = None
    linked_create_action_id: Optional[str] = None


class LinkCompanyCoInvestorAction(BaseAction):
    kind: Literal["LINK_COMPANY_CO_INVESTOR"] = "LINK_COMPANY_CO_INVESTOR"
    company_name: str = Field(..., min_length=1)
    co_investor_name: str = Field(..., min_length=1)
    relationship_type: CompanyCoInvestorRelationship = CompanyCoInvestorRelationship.INVESTOR
    notes: Optional[str] = None
    investment_amount_usd: Optional[float] = Field(None, ge=0)
    company_matches: List[EntityMatch] = Field(default_factory=list)
    co_investor_matches: List[EntityMatch] = Field(default_factory=list)
    selected_company_id: Optional[UUID] = None
    selected_co_investor_id: Optional[UUID] = None
    company_create_action_id: Optional[str] = None
    co_investor_create_action_id: Optional[str] = None


NarrativeAction = Annotated[
    Union[CreateEntityAction, UpdateEntityAction, AddContactAction, LinkCompanyCoInvestorAction],
    Field(discriminator="kind"),
]


class NarrativeCompilation(BaseModel):
    actions: List[NarrativeAction] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class NarrativeCompileRequest(BaseModel):
    """Raw fact payload; each fact is validated on its own."""

    facts: Dict[str, Any] = Field(default_factory=dict)


class NarrativeExecuteRequest(BaseModel):
    actions: List[NarrativeAction] = Field(default_factory=list)


# --- Execution report ---


class ExecutedRecord(BaseModel):
    entity_type: Optional[OrganizationKind] = None
    id: Optional[UUID] = None
    name: Optional[str] = None


class NarrativeExecutionResult(BaseModel):
    action_id: str
    kind: ActionKind
    status: Literal["EXECUTED", "SKIPPED", "FAILED"]
    message: str
    record: Optional[ExecutedRecord] = None


class CreatedEntityReference(BaseModel):
    entity_type: OrganizationKind
    id: UUID
    name: str
    created: bool


class NarrativeExecutionReport(BaseModel):
    summary: str
    executed: int
    failed: int
    skipped: int
    results: List[NarrativeExecutionResult] = Field(default_factory=list)
    created_entities: List[CreatedEntityReference] = Field(default_factory=list)
