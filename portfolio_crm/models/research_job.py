"""
ResearchJob model.

One row per enrichment attempt. The ``search_name``/``selected_*`` columns are
the inputs captured when the job was queued; later edits to the organization
do not change what the job searches for.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, DateTime, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.base_model import BaseModel
from portfolio_crm.models.enums import ResearchJobStatus


class ResearchJob(BaseModel):
    __tablename__ = "research_jobs"

    organization_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ResearchJobStatus.QUEUED.value,
    )

    search_name: Mapped[str] = mapped_column(String(255), nullable=False)
    selected_city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    selected_state: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    selected_country: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    selected_website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_research_jobs_status_created", "status", "created_at"),
        Index("ix_research_jobs_organization", "organization_type", "organization_id"),
    )
