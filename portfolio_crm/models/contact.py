"""
Contact model.

Canonical person record. Email and LinkedIn URL are treated as identity keys
during resolution but are deliberately not unique constraints.
"""

from typing import Optional

from sqlalchemy import String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_crm.models.base_model import BaseModel


class Contact(BaseModel):
    """
    Contact table - one row per real person.
    """

    __tablename__ = "contacts"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    title: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # Stored lowercased
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    # Stored as https://host/path
    linkedin_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (
        Index("ix_contacts_email", "email"),
        Index("ix_contacts_linkedin_url", "linkedin_url"),
        Index("ix_contacts_name", "name"),
    )
