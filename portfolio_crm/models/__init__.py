"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from portfolio_crm.models.contact import Contact
from portfolio_crm.models.contact_link import ContactLink
from portfolio_crm.models.health_system import (
    HealthSystem,
    Executive,
    VenturePartner,
    HealthSystemInvestment,
)
from portfolio_crm.models.company import Company, CompanyHealthSystemLink, CompanyCoInvestorLink
from portfolio_crm.models.co_investor import CoInvestor, CoInvestorPartner, CoInvestorInvestment
from portfolio_crm.models.research_job import ResearchJob

# Export all models
__all__ = [
    "Contact",
    "ContactLink",
    "HealthSystem",
    "Executive",
    "VenturePartner",
    "HealthSystemInvestment",
    "Company",
    "CompanyHealthSystemLink",
    "CompanyCoInvestorLink",
    "CoInvestor",
    "CoInvestorPartner",
    "CoInvestorInvestment",
    "ResearchJob",
]
