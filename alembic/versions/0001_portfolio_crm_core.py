"""Portfolio CRM core tables: organizations, contacts, role links, research jobs

Revision ID: 0001_portfolio_crm_core
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_portfolio_crm_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _record_columns() -> List[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _organization_columns() -> List[sa.Column]:
    return [
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("legal_name", sa.String(length=255), nullable=True),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("headquarters_city", sa.String(length=120), nullable=True),
        sa.Column("headquarters_state", sa.String(length=120), nullable=True),
        sa.Column("headquarters_country", sa.String(length=120), nullable=True),
        sa.Column("research_status", sa.String(length=20), nullable=False, server_default=sa.text("'DRAFT'")),
        sa.Column("research_error", sa.Text(), nullable=True),
        sa.Column("research_notes", sa.Text(), nullable=True),
        sa.Column("research_updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _person_child(table: str, parent_table: str, parent_column: str, url_column: str) -> None:
    op.create_table(
        table,
        *_record_columns(),
        sa.Column(parent_column, sa.Uuid(), sa.ForeignKey(f"{parent_table}.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column(url_column, sa.String(length=500), nullable=True),
    )
    op.create_index(f"ix_{table}_{parent_column}", table, [parent_column])


def upgrade() -> None:
    op.create_table(
        "health_systems",
        *_record_columns(),
        *_organization_columns(),
        sa.Column("net_patient_revenue_usd", sa.Float(), nullable=True),
        sa.Column("is_limited_partner", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("limited_partner_investment_usd", sa.Float(), nullable=True),
        sa.Column("is_alliance_member", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("has_innovation_team", sa.Boolean(), nullable=True),
        sa.Column("has_venture_team", sa.Boolean(), nullable=True),
        sa.Column("venture_team_summary", sa.Text(), nullable=True),
    )
    op.create_index("ix_health_systems_name", "health_systems", ["name"])

    op.create_table(
        "co_investors",
        *_record_columns(),
        *_organization_columns(),
        sa.Column("is_seed_investor", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_series_a_investor", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("investment_notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_co_investors_name", "co_investors", ["name"])

    op.create_table(
        "companies",
        *_record_columns(),
        *_organization_columns(),
        sa.Column("company_type", sa.String(length=20), nullable=False, server_default=sa.text("'STARTUP'")),
        sa.Column("primary_category", sa.String(length=80), nullable=False, server_default=sa.text("'OTHER'")),
        sa.Column("primary_category_other", sa.String(length=255), nullable=True),
        sa.Column("lead_source_type", sa.String(length=20), nullable=False, server_default=sa.text("'OTHER'")),
        sa.Column(
            "lead_source_health_system_id",
            sa.Uuid(),
            sa.ForeignKey("health_systems.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("lead_source_other", sa.String(length=255), nullable=True),
        sa.Column("lead_source_notes", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_companies_name", "companies", ["name"])

    _person_child("health_system_executives", "health_systems", "health_system_id", "linkedin_url")
    _person_child("health_system_venture_partners", "health_systems", "health_system_id", "profile_url")
    _person_child("co_investor_partners", "co_investors", "co_investor_id", "profile_url")

    op.create_table(
        "health_system_investments",
        *_record_columns(),
        sa.Column(
            "health_system_id",
            sa.Uuid(),
            sa.ForeignKey("health_systems.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("portfolio_company_name", sa.String(length=255), nullable=False),
        sa.Column("investment_amount_usd", sa.Float(), nullable=True),
        sa.Column("investment_date", sa.Date(), nullable=True),
        sa.Column("lead_partner_name", sa.String(length=255), nullable=True),
        sa.Column("source_url", sa.String(length=500), nullable=True),
    )
    op.create_index(
        "ix_health_system_investments_health_system_id",
        "health_system_investments",
        ["health_system_id"],
    )

    op.create_table(
        "co_investor_investments",
        *_record_columns(),
        sa.Column("co_investor_id", sa.Uuid(), sa.ForeignKey("co_investors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_company_name", sa.String(length=255), nullable=False),
        sa.Column("investment_amount_usd", sa.Float(), nullable=True),
        sa.Column("investment_date", sa.Date(), nullable=True),
        sa.Column("investment_stage", sa.String(length=80), nullable=True),
        sa.Column("lead_partner_name", sa.String(length=255), nullable=True),
        sa.Column("source_url", sa.String(length=500), nullable=True),
    )
    op.create_index("ix_co_investor_investments_co_investor_id", "co_investor_investments", ["co_investor_id"])

    op.create_table(
        "company_health_system_links",
        *_record_columns(),
        sa.Column("company_id", sa.Uuid(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "health_system_id",
            sa.Uuid(),
            sa.ForeignKey("health_systems.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("relationship_type", sa.String(length=30), nullable=False, server_default=sa.text("'CUSTOMER'")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("investment_amount_usd", sa.Float(), nullable=True),
        sa.Column("ownership_percent", sa.Float(), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=False, server_default=sa.text("'MANUAL'")),
    )
    op.create_index("ix_company_health_system_links_company_id", "company_health_system_links", ["company_id"])

    op.create_table(
        "company_co_investor_links",
        *_record_columns(),
        sa.Column("company_id", sa.Uuid(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("co_investor_id", sa.Uuid(), sa.ForeignKey("co_investors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("relationship_type", sa.String(length=20), nullable=False, server_default=sa.text("'INVESTOR'")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("investment_amount_usd", sa.Float(), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=False, server_default=sa.text("'MANUAL'")),
    )
    op.create_index("ix_company_co_investor_links_company_id", "company_co_investor_links", ["company_id"])

    op.create_table(
        "contacts",
        *_record_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=100), nullable=True),
        sa.Column("linkedin_url", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_contacts_email", "contacts", ["email"])
    op.create_index("ix_contacts_linkedin_url", "contacts", ["linkedin_url"])
    op.create_index("ix_contacts_name", "contacts", ["name"])

    op.create_table(
        "contact_links",
        *_record_columns(),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("organization_type", sa.String(length=30), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("role_type", sa.String(length=30), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.UniqueConstraint(
            "contact_id",
            "organization_type",
            "organization_id",
            "role_type",
            name="uq_contact_links_identity",
        ),
    )
    op.create_index("ix_contact_links_organization", "contact_links", ["organization_type", "organization_id"])

    op.create_table(
        "research_jobs",
        *_record_columns(),
        sa.Column("organization_type", sa.String(length=30), nullable=False),
        sa.Column("organization_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'QUEUED'")),
        sa.Column("search_name", sa.String(length=255), nullable=False),
        sa.Column("selected_city", sa.String(length=120), nullable=True),
        sa.Column("selected_state", sa.String(length=120), nullable=True),
        sa.Column("selected_country", sa.String(length=120), nullable=True),
        sa.Column("selected_website", sa.String(length=500), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_research_jobs_status_created", "research_jobs", ["status", "created_at"])
    op.create_index("ix_research_jobs_organization", "research_jobs", ["organization_type", "organization_id"])


def downgrade() -> None:
    op.drop_index("ix_research_jobs_organization", table_name="research_jobs")
    op.drop_index("ix_research_jobs_status_created", table_name="research_jobs")
    op.drop_table("research_jobs")
    op.drop_index("ix_contact_links_organization", table_name="contact_links")
    op.drop_table("contact_links")
    op.drop_index("ix_contacts_name", table_name="contacts")
    op.drop_index("ix_contacts_linkedin_url", table_name="contacts")
    op.drop_index("ix_contacts_email", table_name="contacts")
    op.drop_table("contacts")
    op.drop_table("company_co_investor_links")
    op.drop_table("company_health_system_links")
    op.drop_table("co_investor_investments")
    op.drop_table("health_system_investments")
    op.drop_table("co_investor_partners")
    op.drop_table("health_system_venture_partners")
    op.drop_table("health_system_executives")
    op.drop_table("companies")
    op.drop_table("co_investors")
    op.drop_table("health_systems")
