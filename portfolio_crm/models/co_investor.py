"""
CoInvestor model and its research-derived children.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import String, Text, Boolean, Float, Date, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.base_model import BaseModel
from portfolio_crm.models.organization_mixin import OrganizationMixin


class CoInvestor(OrganizationMixin, BaseModel):
    __tablename__ = "co_investors"

    is_seed_investor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_series_a_investor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    investment_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class CoInvestorPartner(BaseModel):
    __tablename__ = "co_investor_partners"

    co_investor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("co_investors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class CoInvestorInvestment(BaseModel):
    __tablename__ = "co_investor_investments"

    co_investor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("co_investors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    portfolio_company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    investment_amount_usd: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    investment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    investment_stage: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    lead_partner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
