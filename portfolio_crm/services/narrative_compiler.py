"""
Narrative fact compiler.

Turns loosely typed facts (names only, no database ids) into an ordered list
of ``NarrativeAction`` objects. Compilation is pure: no database access, and
the same facts in the same order always produce the same action ids.

Emission order is fixed by fact category: creates, updates, lead-source
updates, co-investor links, contacts. One ordinal counter is shared by all
categories.
"""

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel, to_snake

from portfolio_crm.core.config import settings
from portfolio_crm.models.enums import CompanyCoInvestorRelationship, ContactRoleType, OrganizationKind
from portfolio_crm.schemas.narrative import (
    AddContactAction,
    AddContactFact,
    CompanyCoInvestorLinkFact,
    CompanyLeadSourceFact,
    CreateEntityAction,
    CreateEntityFact,
    LinkCompanyCoInvestorAction,
    NarrativeAction,
    NarrativeCompilation,
    SemanticFacts,
    UpdateEntityAction,
    UpdateEntityFact,
)
from portfolio_crm.schemas.organization import OrganizationPatch
from portfolio_crm.utils.text_normalization import normalize_lookup, slugify_label, trim_or_none

logger = logging.getLogger(__name__)

_QUOTES_AND_PUNCTUATION = "\\s\"'`\u201c\u201d\u2018\u2019(),.;:!?-"
_LEADING_JUNK_RE = re.compile(f"^[{_QUOTES_AND_PUNCTUATION}]+")
_TRAILING_JUNK_RE = re.compile(f"[{_QUOTES_AND_PUNCTUATION}]+$")
_WHITESPACE_RE = re.compile(r"\s+")
_ENTITY_NOUN = r"(?:company|co[\s-]?investor|health\s*system|healthcare\s*system)"
_FILLER_RES = (
    re.compile(rf"^(?:a|an|the)\s+{_ENTITY_NOUN}\s+(?:called|named)\s+", re.IGNORECASE),
    re.compile(rf"^{_ENTITY_NOUN}\s+(?:called|named)\s+", re.IGNORECASE),
    re.compile(r"^(?:called|named)\s+", re.IGNORECASE),
)
_NAME_LIST_SEPARATOR_RE = re.compile(r"[,;]")
_AND_RE = re.compile(r"\band\b", re.IGNORECASE)
_VENTURES_RE = re.compile(r"\bventures?\b", re.IGNORECASE)
_ENUM_TOKEN_RE = re.compile(r"[^A-Z_]")
_REPEATED_UNDERSCORE_RE = re.compile(r"__+")

# Compiled in this order; the ordinal counter runs across all of them.
FACT_CATEGORIES: Tuple[Tuple[str, Type[BaseModel]], ...] = (
    ("create_entities", CreateEntityFact),
    ("update_entities", UpdateEntityFact),
    ("company_lead_source_assignments", CompanyLeadSourceFact),
    ("company_co_investor_links", CompanyCoInvestorLinkFact),
    ("add_contacts", AddContactFact),
)

_FACT_LABELS = {
    "create_entities": "create",
    "update_entities": "update",
    "company_lead_source_assignments": "lead-source",
    "company_co_investor_links": "co-investor link",
    "add_contacts": "contact",
}


def clean_narrative_name(value: Optional[str]) -> str:
    """Strip quotes, punctuation and filler such as "a company called" from a spoken name."""
    text = _strip_junk(value)
    for pattern in _FILLER_RES:
        text = pattern.sub("", text)
    # Filler can sit outside a quoted name, so strip again once it is gone.
    return _strip_junk(text)


def _strip_junk(value: Optional[str]) -> str:
    text = (value or "").strip()
    text = _LEADING_JUNK_RE.sub("", text)
    text = _TRAILING_JUNK_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def dedupe_strings(values: List[str]) -> List[str]:
    """Drop blanks and repeats (by lookup key), keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        cleaned = (value or "").strip()
        key = normalize_lookup(cleaned)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


def split_co_investor_names(values: List[str]) -> List[str]:
    """
    Expand "A, B; C" and "A and B" into separate names.

    Text naming a venture firm is never split on "and", so
    "Health and Wellness Ventures" stays one name.
    """
    expanded: List[str] = []
    for value in values:
        text = clean_narrative_name(value)
        if not text:
            continue
        if _NAME_LIST_SEPARATOR_RE.search(text):
            parts = _NAME_LIST_SEPARATOR_RE.split(text)
        elif _AND_RE.search(text) and not _VENTURES_RE.search(text):
            parts = _AND_RE.split(text)
        else:
            expanded.append(text)
            continue
        expanded.extend(name for name in (clean_narrative_name(part) for part in parts) if name)
    return dedupe_strings(expanded)


def build_action_id(prefix: str, index: int, label: str) -> str:
    slug = slugify_label(label, max_length=settings.NARRATIVE_ACTION_LABEL_MAX)
    return f"{prefix}-{index + 1}-{slug}" if slug else f"{prefix}-{index + 1}"


def _enum_token(value: Optional[str]) -> str:
    normalized = _ENUM_TOKEN_RE.sub("_", (value or "").strip().upper())
    return _REPEATED_UNDERSCORE_RE.sub("_", normalized)


def parse_relationship_type(value: Optional[str]) -> CompanyCoInvestorRelationship:
    token = _enum_token(value)
    try:
        return CompanyCoInvestorRelationship(token)
    except ValueError:
        pass
    if "PARTNER" in token:
        return CompanyCoInvestorRelationship.PARTNER
    if "OTHER" in token:
        return CompanyCoInvestorRelationship.OTHER
    return CompanyCoInvestorRelationship.INVESTOR


def parse_role_type(value: Optional[str]) -> ContactRoleType:
    try:
        return ContactRoleType(_enum_token(value))
    except ValueError:
        return ContactRoleType.OTHER


def _create_key(entity_type: OrganizationKind, name: str) -> Tuple[str, str]:
    return OrganizationKind(entity_type).value, normalize_lookup(name)


def _snake_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    return {to_snake(str(key)): value for key, value in patch.items()}


def _first_error(exc: SchemaValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


class NarrativeCompiler:
    """One compilation run. Holds the per-batch create map and dedup keys."""

    def __init__(self):
        self.actions: List[NarrativeAction] = []
        self.warnings: List[str] = []
        self._index = 0
        self._created_by_key: Dict[Tuple[str, str], str] = {}
        self._seen_updates = set()
        self._seen_lead_sources = set()
        self._seen_links = set()

    def _next_id(self, prefix: str, label: str) -> str:
        action_id = build_action_id(prefix, self._index, label)
        self._index += 1
        return action_id

    def _warn(self, message: str) -> None:
        logger.debug("narrative_compile_warning %s", message)
        self.warnings.append(message)

    def compile(self, facts: Union[SemanticFacts, Mapping[str, Any], None]) -> NarrativeCompilation:
        validated = self._validate_facts(facts)

        for fact in validated["create_entities"]:
            self.ensure_create_action(fact.entity_type, fact.name)
        for fact in validated["update_entities"]:
            self._compile_update(fact)
        for fact in validated["company_lead_source_assignments"]:
            self._compile_lead_source(fact)
        for fact in validated["company_co_investor_links"]:
            self._compile_links(fact)
        for fact in validated["add_contacts"]:
            self._compile_contact(fact)

        return NarrativeCompilation(actions=self.actions, warnings=dedupe_strings(self.warnings))

    def _validate_facts(self, facts: Union[SemanticFacts, Mapping[str, Any], None]) -> Dict[str, List[Any]]:
        """Validate each fact on its own; invalid facts become warnings."""
        if isinstance(facts, SemanticFacts):
            return {name: list(getattr(facts, name)) for name, _ in FACT_CATEGORIES}

        raw = facts or {}
        validated: Dict[str, List[Any]] = {}
        for name, model in FACT_CATEGORIES:
            entries = raw.get(name, raw.get(to_camel(name)))
            validated[name] = []
            if entries is None:
                continue
            if not isinstance(entries, list):
                self._warn(f"Ignored {name}: expected a list of facts.")
                continue
            for position, entry in enumerate(entries, start=1):
                if isinstance(entry, model):
                    validated[name].append(entry)
                    continue
                try:
                    validated[name].append(model.model_validate(entry))
                except SchemaValidationError as exc:
                    self._warn(f"Skipped invalid {_FACT_LABELS[name]} fact #{position} ({_first_error(exc)}).")
        return validated

    def ensure_create_action(self, entity_type: OrganizationKind, raw_name: str) -> Optional[str]:
        """Return the CREATE action id for this entity, emitting it the first time it is seen."""
        name = clean_narrative_name(raw_name)
        if not name:
            return None
        kind = OrganizationKind(entity_type)
        key = _create_key(kind, name)
        existing = self._created_by_key.get(key)
        if existing:
            return existing

        action_id = self._next_id("create-entity", f"{kind.value}-{name}")
        try:
            action = CreateEntityAction(
                id=action_id,
                entity_type=kind,
                draft={"name": name},
            )
        except SchemaValidationError:
            self._warn(f'Could not compile create action for {kind.value.lower()} "{name}".')
            return None

        self.actions.append(action)
        self._created_by_key[key] = action.id
        return action.id

    def _compile_update(self, fact: UpdateEntityFact) -> None:
        target_name = clean_narrative_name(fact.target_name)
        if not target_name:
            self._warn("Skipped an update with no usable target name.")
            return

        patch = _snake_patch(fact.patch)
        unknown = sorted(set(patch) - set(OrganizationPatch.model_fields))
        if unknown:
            self._warn(f'Ignored unknown fields for "{target_name}": {", ".join(unknown)}.')
            patch = {key: value for key, value in patch.items() if key not in unknown}
        update_key = (
            OrganizationKind(fact.entity_type).value,
            normalize_lookup(target_name),
            json.dumps(patch, sort_keys=True, default=str),
        )
        if update_key in self._seen_updates:
            return
        self._seen_updates.add(update_key)

        action_id = self._next_id("update-entity", f"{OrganizationKind(fact.entity_type).value}-{target_name}")
        try:
            action = UpdateEntityAction(
                id=action_id,
                entity_type=fact.entity_type,
                target_name=target_name,
                patch=patch,
                linked_create_action_id=self._created_by_key.get(_create_key(fact.entity_type, target_name)),
            )
        except SchemaValidationError:
            self._warn(f'Could not compile update action for "{target_name}".')
            return
        self.actions.append(action)

    def _compile_lead_source(self, fact: CompanyLeadSourceFact) -> None:
        company_name = clean_narrative_name(fact.company_name)
        health_system_name = clean_narrative_name(fact.health_system_name)
        if not company_name or not health_system_name:
            self._warn("Skipped a lead-source assignment with a blank company or health system name.")
            return

        key = (normalize_lookup(company_name), normalize_lookup(health_system_name))
        if key in self._seen_lead_sources:
            return
        self._seen_lead_sources.add(key)

        action_id = self._next_id("update-company-lead-source", f"{company_name}-{health_system_name}")
        try:
            action = UpdateEntityAction(
                id=action_id,
                entity_type=OrganizationKind.COMPANY,
                target_name=company_name,
                patch={
                    "lead_source_type": "HEALTH_SYSTEM",
                    "lead_source_health_system_name": health_system_name,
                    "lead_source_notes": trim_or_none(fact.notes)
                    or f"{health_system_name} is the lead source for {company_name}.",
                },
                linked_create_action_id=self._created_by_key.get(_create_key(OrganizationKind.COMPANY, company_name)),
            )
        except SchemaValidationError:
            self._warn(f'Could not compile lead-source update for "{company_name}".')
            return
        self.actions.append(action)

    def _compile_links(self, fact: CompanyCoInvestorLinkFact) -> None:
        company_name = clean_narrative_name(fact.company_name)
        if not company_name:
            self._warn("Skipped a co-investor link with no usable company name.")
            return

        company_create_action_id = self._created_by_key.get(_create_key(OrganizationKind.COMPANY, company_name))
        relationship_type = parse_relationship_type(fact.relationship_type)
        for co_investor_name in split_co_investor_names(fact.co_investor_names):
            co_investor_create_action_id = self.ensure_create_action(OrganizationKind.CO_INVESTOR, co_investor_name)
            link_key = (normalize_lookup(company_name), normalize_lookup(co_investor_name))
            if link_key in self._seen_links:
                continue
            self._seen_links.add(link_key)

            action_id = self._next_id("link-company-co-investor", f"{company_name}-{co_investor_name}")
            try:
                action = LinkCompanyCoInvestorAction(
                    id=action_id,
                    company_name=company_name,
                    co_investor_name=co_investor_name,
                    relationship_type=relationship_type,
                    notes=trim_or_none(fact.notes),
                    company_create_action_id=company_create_action_id,
                    co_investor_create_action_id=co_investor_create_action_id,
                )
            except SchemaValidationError:
                self._warn(f'Could not compile co-investor link "{company_name} <-> {co_investor_name}".')
                continue
            self.actions.append(action)

    def _compile_contact(self, fact: AddContactFact) -> None:
        parent_name = clean_narrative_name(fact.parent_name)
        contact_name = clean_narrative_name(fact.contact.name)
        if not parent_name or not contact_name:
            self._warn("Skipped a contact with a blank person or parent name.")
            return

        action_id = self._next_id("add-contact", f"{parent_name}-{contact_name}")
        try:
            action = AddContactAction(
                id=action_id,
                parent_type=fact.parent_type,
                parent_name=parent_name,
                role_type=parse_role_type(fact.role_type),
                contact={
                    "name": contact_name,
                    "title": trim_or_none(fact.contact.title),
                    "relationship_title": trim_or_none(fact.contact.relationship_title),
                    "email": trim_or_none(fact.contact.email),
                    "phone": trim_or_none(fact.contact.phone),
                    "linkedin_url": trim_or_none(fact.contact.linkedin_url),
                    "notes": trim_or_none(fact.contact.notes),
                },
                linked_create_action_id=self._created_by_key.get(_create_key(fact.parent_type, parent_name)),
            )
        except SchemaValidationError:
            self._warn(f'Could not compile contact add for "{contact_name}".')
            return
        self.actions.append(action)


def compile_semantic_facts(facts: Union[SemanticFacts, Mapping[str, Any], None]) -> NarrativeCompilation:
    """Compile one batch of facts; a bad fact costs a warning, never the batch."""
    return NarrativeCompiler().compile(facts)
