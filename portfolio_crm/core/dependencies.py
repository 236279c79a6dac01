"""
FastAPI dependencies.

Routes that run several independent transactions (research batches, narrative
execution) take a session factory instead of a request-scoped session. Tests
override these providers.
"""

from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.db.session import async_session_maker, get_db
from portfolio_crm.services.research_providers import OrganizationEnrichmentProvider, get_research_provider


def get_session_factory() -> Callable[[], AsyncSession]:
    return async_session_maker


def get_enrichment_provider() -> OrganizationEnrichmentProvider:
    return get_research_provider()


__all__ = ["get_db", "get_session_factory", "get_enrichment_provider"]
