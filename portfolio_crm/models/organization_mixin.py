"""
Columns shared by every organization kind.

Health systems, companies and co-investors all carry the same identity and
research-state fields; duplicate detection and the research queue only ever
touch these.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.enums import ResearchStatus


class OrganizationMixin:
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    legal_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    website: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    headquarters_city: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True,
    )

    headquarters_state: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True,
    )

    headquarters_country: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True,
    )

    research_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ResearchStatus.DRAFT.value,
    )

    research_error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    research_notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    research_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
