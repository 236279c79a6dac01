"""Enrichment provider contract."""

from typing import Protocol

from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.schemas.enrichment import OrganizationEnrichmentDraft, OrganizationSeed


class OrganizationEnrichmentProvider(Protocol):
    """
    Turns a minimal organization seed into a structured draft.

    Implementations raise ``EnrichmentFailure`` when the call fails or the
    output does not validate; an empty-but-valid draft is a success.
    """

    key: str

    async def enrich(self, kind: OrganizationKind, seed: OrganizationSeed) -> OrganizationEnrichmentDraft:
        ...
