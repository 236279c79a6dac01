"""
HealthSystem model and its research-derived children.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import String, Text, Boolean, Float, Date, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.base_model import BaseModel
from portfolio_crm.models.organization_mixin import OrganizationMixin


class HealthSystem(OrganizationMixin, BaseModel):
    __tablename__ = "health_systems"

    net_patient_revenue_usd: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    is_limited_partner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    limited_partner_investment_usd: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    is_alliance_member: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    has_innovation_team: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    has_venture_team: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    venture_team_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Executive(BaseModel):
    """Executive found by research; rebuilt on every successful job."""

    __tablename__ = "health_system_executives"

    health_system_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("health_systems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    linkedin_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class VenturePartner(BaseModel):
    __tablename__ = "health_system_venture_partners"

    health_system_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("health_systems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class HealthSystemInvestment(BaseModel):
    __tablename__ = "health_system_investments"

    health_system_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("health_systems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    portfolio_company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    investment_amount_usd: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    investment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lead_partner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
