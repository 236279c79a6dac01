"""
Company model and its organization links.

Link rows carry a ``source`` so a research rerun can replace what research
wrote without touching links entered by hand or through narrative intake.
"""

import uuid
from typing import Optional

from sqlalchemy import String, Text, Float, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.base_model import BaseModel
from portfolio_crm.models.enums import CompanyType, LeadSourceType, LinkSource
from portfolio_crm.models.organization_mixin import OrganizationMixin


class Company(OrganizationMixin, BaseModel):
    __tablename__ = "companies"

    company_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CompanyType.STARTUP.value,
    )

    primary_category: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        default="OTHER",
    )

    primary_category_other: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    lead_source_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LeadSourceType.OTHER.value,
    )

    lead_source_health_system_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("health_systems.id", ondelete="SET NULL"),
        nullable=True,
    )

    lead_source_other: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    lead_source_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class CompanyHealthSystemLink(BaseModel):
    __tablename__ = "company_health_system_links"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    health_system_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("health_systems.id", ondelete="CASCADE"),
        nullable=False,
    )

    relationship_type: Mapped[str] = mapped_column(String(30), nullable=False, default="CUSTOMER")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    investment_amount_usd: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ownership_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LinkSource.MANUAL.value,
    )


class CompanyCoInvestorLink(BaseModel):
    __tablename__ = "company_co_investor_links"

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    co_investor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("co_investors.id", ondelete="CASCADE"),
        nullable=False,
    )

    relationship_type: Mapped[str] = mapped_column(String(20), nullable=False, default="INVESTOR")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    investment_amount_usd: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LinkSource.MANUAL.value,
    )
