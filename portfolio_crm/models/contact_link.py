"""
ContactLink model.

Role link between a contact and one organization of any kind.
"""

import uuid
from typing import Optional

from sqlalchemy import String, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.base_model import BaseModel


class ContactLink(BaseModel):
    """
    ContactLink table - at most one row per (contact, organization, role).
    """

    __tablename__ = "contact_links"

    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=False,
    )

    # HEALTH_SYSTEM | COMPANY | CO_INVESTOR
    organization_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
    )

    role_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
    )

    # Relationship-specific title, distinct from Contact.title
    title: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "contact_id",
            "organization_type",
            "organization_id",
            "role_type",
            name="uq_contact_links_identity",
        ),
        Index("ix_contact_links_organization", "organization_type", "organization_id"),
    )
