"""Enrichment providers used by the research queue."""

from typing import Optional

from portfolio_crm.core.config import settings
from portfolio_crm.services.research_providers.base import OrganizationEnrichmentProvider
from portfolio_crm.services.research_providers.fixture_provider import FixtureResearchProvider
from portfolio_crm.services.research_providers.openai_provider import OpenAIResearchProvider


def get_research_provider(name: Optional[str] = None) -> OrganizationEnrichmentProvider:
    """Provider selected by ``RESEARCH_PROVIDER`` unless a name is given."""
    key = (name or settings.RESEARCH_PROVIDER or "openai").strip().lower()
    if key == FixtureResearchProvider.key:
        return FixtureResearchProvider(fixture_path=settings.RESEARCH_FIXTURE_PATH)
    if key == OpenAIResearchProvider.key:
        return OpenAIResearchProvider()
    raise ValueError(f"Unknown research provider: {key}")


__all__ = [
    "OrganizationEnrichmentProvider",
    "FixtureResearchProvider",
    "OpenAIResearchProvider",
    "get_research_provider",
]
