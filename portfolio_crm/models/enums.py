"""String enumerations stored as plain VARCHAR columns."""

from enum import Enum


class OrganizationKind(str, Enum):
    HEALTH_SYSTEM = "HEALTH_SYSTEM"
    COMPANY = "COMPANY"
    CO_INVESTOR = "CO_INVESTOR"


class ContactRoleType(str, Enum):
    EXECUTIVE = "EXECUTIVE"
    VENTURE_PARTNER = "VENTURE_PARTNER"
    INVESTOR_PARTNER = "INVESTOR_PARTNER"
    COMPANY_CONTACT = "COMPANY_CONTACT"
    OTHER = "OTHER"


class ResearchStatus(str, Enum):
    """Organization-level research state."""

    DRAFT = "DRAFT"
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ResearchJobStatus(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CompanyType(str, Enum):
    STARTUP = "STARTUP"
    SPIN_OUT = "SPIN_OUT"
    DENOVO = "DENOVO"


class LeadSourceType(str, Enum):
    HEALTH_SYSTEM = "HEALTH_SYSTEM"
    OTHER = "OTHER"


class CompanyHealthSystemRelationship(str, Enum):
    CUSTOMER = "CUSTOMER"
    SPIN_OUT_PARTNER = "SPIN_OUT_PARTNER"
    INVESTOR_PARTNER = "INVESTOR_PARTNER"
    OTHER = "OTHER"


class CompanyCoInvestorRelationship(str, Enum):
    INVESTOR = "INVESTOR"
    PARTNER = "PARTNER"
    OTHER = "OTHER"


class LinkSource(str, Enum):
    """Who wrote a company link row; enrichment only replaces its own rows."""

    RESEARCH = "RESEARCH"
    MANUAL = "MANUAL"
