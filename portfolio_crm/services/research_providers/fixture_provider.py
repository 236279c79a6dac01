"""
Deterministic enrichment provider backed by JSON fixtures.

Fixture files are either a single draft object or
``{"default": {...}, "by_name": {"<lowercase name>": {...}}}``. With no
fixture at all the seed itself is echoed back as an empty draft.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaValidationError

from portfolio_crm.errors import EnrichmentFailure
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.schemas.enrichment import OrganizationEnrichmentDraft, OrganizationSeed
from portfolio_crm.utils.text_normalization import normalize_text


class FixtureResearchProvider:
    key = "fixture"

    def __init__(self, fixtures: Optional[Dict[str, Any]] = None, fixture_path: Optional[str] = None):
        if fixtures is None and fixture_path:
            path = Path(fixture_path)
            if not path.exists():
                raise EnrichmentFailure(f"Research fixture not found: {fixture_path}")
            with open(path, "r", encoding="utf-8") as handle:
                fixtures = json.load(handle)
        self.fixtures = fixtures or {}

    def _select(self, seed: OrganizationSeed) -> Optional[Any]:
        by_name = self.fixtures.get("by_name")
        if isinstance(by_name, dict):
            keyed = {normalize_text(name): value for name, value in by_name.items()}
            return keyed.get(normalize_text(seed.name), self.fixtures.get("default"))
        if "default" in self.fixtures:
            return self.fixtures["default"]
        return self.fixtures or None

    async def enrich(self, kind: OrganizationKind, seed: OrganizationSeed) -> OrganizationEnrichmentDraft:
        selected = self._select(seed)
        if selected is None:
            return OrganizationEnrichmentDraft(**seed.model_dump())
        if isinstance(selected, dict) and selected.get("error"):
            raise EnrichmentFailure(str(selected["error"]))

        payload = {"name": seed.name}
        if isinstance(selected, dict):
            payload.update(selected)
        try:
            return OrganizationEnrichmentDraft.model_validate(payload)
        except SchemaValidationError as exc:
            raise EnrichmentFailure(f"Research output failed validation: {exc}")
