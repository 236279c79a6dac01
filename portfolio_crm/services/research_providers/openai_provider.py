"""
OpenAI-compatible chat-completions enrichment provider.

The model is asked for a single JSON object shaped like
``OrganizationEnrichmentDraft``; the response is validated before anything is
persisted.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from portfolio_crm.core.config import settings
from portfolio_crm.errors import EnrichmentFailure
from portfolio_crm.models.enums import OrganizationKind
from portfolio_crm.schemas.enrichment import OrganizationEnrichmentDraft, OrganizationSeed

logger = logging.getLogger(__name__)

_KIND_INSTRUCTIONS = {
    OrganizationKind.HEALTH_SYSTEM: (
        "The organization is a US health system. Fill net_patient_revenue_usd, has_innovation_team, "
        "has_venture_team, venture_team_summary, executives[] and venture_partners[] "
        "(name, title, email, phone, url) and investments[] (portfolio_company_name, "
        "investment_amount_usd, investment_date, lead_partner_name, source_url)."
    ),
    OrganizationKind.COMPANY: (
        "The organization is a healthcare technology company. Fill company_type "
        "(STARTUP, SPIN_OUT or DENOVO), primary_category, description, contacts[] "
        "(name, title, relationship_title, email, phone, url, role_type), health_system_links[] "
        "and co_investor_links[] (name, relationship_type, notes, investment_amount_usd)."
    ),
    OrganizationKind.CO_INVESTOR: (
        "The organization is a venture investor. Fill is_seed_investor, is_series_a_investor, "
        "investment_notes, partners[] (name, title, email, phone, url) and investments[] "
        "(portfolio_company_name, investment_amount_usd, investment_date, investment_stage, "
        "lead_partner_name, source_url)."
    ),
}


class OpenAIResearchProvider:
    key = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_RESEARCH_MODEL
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.RESEARCH_HTTP_TIMEOUT_SECONDS
        self.transport = transport

    def _build_request_body(self, kind: OrganizationKind, seed: OrganizationSeed) -> Dict[str, Any]:
        seed_lines = [f"name: {seed.name}"]
        for label, value in (
            ("website", seed.website),
            ("city", seed.headquarters_city),
            ("state", seed.headquarters_state),
            ("country", seed.headquarters_country),
        ):
            if value:
                seed_lines.append(f"{label}: {value}")

        return {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "You are a CRM research assistant. Return ONLY a JSON object. Always include name, "
                        "legal_name, website, headquarters_city, headquarters_state, headquarters_country "
                        "and research_notes. Use empty strings or empty arrays for unknown values; never guess."
                    ),
                },
                {
                    "role": "user",
                    "content": _KIND_INSTRUCTIONS[kind] + "\n\nOrganization:\n" + "\n".join(seed_lines),
                },
            ],
        }

    @staticmethod
    def _parse_content(payload: Any) -> Dict[str, Any]:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise EnrichmentFailure("Research response did not contain a message")
        if not isinstance(content, str) or not content.strip():
            raise EnrichmentFailure("Research response was empty")

        text = content.strip()
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            start, end = text.find("{"), text.rfind("}")
            if start < 0 or end <= start:
                raise EnrichmentFailure("Research response was not JSON")
            try:
                parsed = json.loads(text[start : end + 1])
            except json.JSONDecodeError as exc:
                raise EnrichmentFailure(f"Research response was not JSON: {exc}")
        if not isinstance(parsed, dict):
            raise EnrichmentFailure("Research response was not a JSON object")
        return parsed

    async def enrich(self, kind: OrganizationKind, seed: OrganizationSeed) -> OrganizationEnrichmentDraft:
        if not self.api_key:
            raise EnrichmentFailure("OPENAI_API_KEY is not configured")

        kind = OrganizationKind(kind)
        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        body = self._build_request_body(kind, seed)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise EnrichmentFailure(f"Research request failed: {exc}")

        if resp.status_code != 200:
            raise EnrichmentFailure(
                f"Research provider returned HTTP {resp.status_code}: {resp.text}",
                details={"status_code": resp.status_code},
            )

        try:
            payload = resp.json()
        except ValueError:
            raise EnrichmentFailure("Research provider returned a non-JSON body")

        parsed = self._parse_content(payload)
        try:
            draft = OrganizationEnrichmentDraft.model_validate(parsed)
        except SchemaValidationError as exc:
            raise EnrichmentFailure(f"Research output failed validation: {exc}")

        logger.debug("research_enriched kind=%s name=%r model=%s", kind.value, seed.name, self.model)
        return draft
