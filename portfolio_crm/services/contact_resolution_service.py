"""
Contact identity resolution.

Resolves an incoming person description to one canonical ``Contact``:

1. Identity match: LinkedIn URL, then email. Authoritative; name is ignored.
2. Name match: a wide SQL prefilter, then in-memory scoring with a nickname-aware
   first name and a small title bonus. Accepted only at or above the threshold.
3. Create.

Matches hydrate the existing record: null fields are filled from the
candidate, populated fields are never overwritten. "No match" is a normal
outcome, not an error; only an empty name raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_crm.core.config import settings
from portfolio_crm.errors import ValidationError
from portfolio_crm.models.contact import Contact
from portfolio_crm.repositories.contact_repository import ContactRepository
from portfolio_crm.schemas.contact import ContactCandidate
from portfolio_crm.utils.text_normalization import (
    ParsedName,
    normalize_email,
    normalize_for_comparison,
    normalize_website_or_linkedin,
    parse_name,
    trim_or_none,
)

logger = logging.getLogger(__name__)

HYDRATED_FIELDS = ("title", "email", "phone", "linkedin_url", "notes")


@dataclass(frozen=True)
class MatchThresholds:
    identity_confidence: float = 0.99
    name_match_threshold: float = 0.75
    name_confidence_cap: float = 0.95
    title_exact_bonus: float = 0.08
    title_overlap_bonus: float = 0.05
    title_overlap_ratio: float = 0.5
    name_pool_limit: int = 50

    @classmethod
    def from_settings(cls) -> "MatchThresholds":
        return cls(
            identity_confidence=settings.CONTACT_IDENTITY_CONFIDENCE,
            name_match_threshold=settings.CONTACT_NAME_MATCH_THRESHOLD,
            name_confidence_cap=settings.CONTACT_NAME_CONFIDENCE_CAP,
            title_exact_bonus=settings.CONTACT_TITLE_EXACT_BONUS,
            title_overlap_bonus=settings.CONTACT_TITLE_OVERLAP_BONUS,
            title_overlap_ratio=settings.CONTACT_TITLE_OVERLAP_RATIO,
            name_pool_limit=settings.CONTACT_NAME_POOL_LIMIT,
        )


@dataclass
class CleanedCandidate:
    name: str
    title: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    linkedin_url: Optional[str]
    relationship_title: Optional[str]
    notes: Optional[str] = None


@dataclass
class ContactResolution:
    contact: Contact
    matched_by: str
    confidence: float
    was_created: bool
    explanation: List[str] = field(default_factory=list)


def clean_candidate(candidate: ContactCandidate) -> CleanedCandidate:
    return CleanedCandidate(
        name=trim_or_none(candidate.name) or "",
        title=trim_or_none(candidate.title),
        email=normalize_email(candidate.email),
        phone=trim_or_none(candidate.phone),
        linkedin_url=normalize_website_or_linkedin(candidate.linkedin_url),
        relationship_title=trim_or_none(candidate.relationship_title),
        notes=trim_or_none(candidate.notes),
    )


def score_name_match(candidate: ParsedName, existing_name: Optional[str]) -> Tuple[float, str]:
    """
    Score a parsed candidate name against an existing contact name.

    Returns ``(score, rule)``; ``(0.0, "no_match")`` when no rule fires.
    """
    if not existing_name:
        return 0.0, "no_match"

    existing = parse_name(existing_name)
    if not candidate.normalized_full or not existing.normalized_full:
        return 0.0, "no_match"

    if candidate.normalized_full == existing.normalized_full:
        return 0.95, "full_name"

    last_matches = bool(candidate.last_name and candidate.last_name == existing.last_name)
    first_matches = bool(candidate.first_name and candidate.first_name == existing.first_name)
    canonical_first_matches = bool(
        candidate.canonical_first_name and candidate.canonical_first_name == existing.canonical_first_name
    )
    initial_matches = bool(
        candidate.first_name and existing.first_name and candidate.first_name[0] == existing.first_name[0]
    )

    if last_matches and first_matches:
        return 0.93, "last_name+first_name"
    if last_matches and canonical_first_matches:
        return 0.88, "last_name+canonical_first_name"
    if last_matches and initial_matches:
        return 0.80, "last_name+first_initial"
    if canonical_first_matches and candidate.last_name and not existing.last_name:
        return 0.74, "canonical_first_name+existing_without_last_name"
    if canonical_first_matches:
        return 0.70, "canonical_first_name"
    return 0.0, "no_match"


def score_title_match(
    candidate_title: Optional[str],
    existing_title: Optional[str],
    thresholds: Optional[MatchThresholds] = None,
) -> Tuple[float, Optional[str]]:
    thresholds = thresholds or MatchThresholds()
    left = normalize_for_comparison(candidate_title)
    right = normalize_for_comparison(existing_title)
    if not left or not right:
        return 0.0, None
    if left == right:
        return thresholds.title_exact_bonus, "title_exact"

    left_tokens = {token for token in left.split(" ") if token}
    right_tokens = {token for token in right.split(" ") if token}
    if not left_tokens or not right_tokens:
        return 0.0, None

    ratio = len(left_tokens & right_tokens) / max(len(left_tokens), len(right_tokens))
    if ratio >= thresholds.title_overlap_ratio:
        return thresholds.title_overlap_bonus, "title_overlap"
    return 0.0, None


class ContactResolutionService:
    """Find-or-create for contacts within the caller's transaction."""

    def __init__(self, db: AsyncSession, thresholds: Optional[MatchThresholds] = None):
        self.db = db
        self.repo = ContactRepository(db)
        self.thresholds = thresholds or MatchThresholds.from_settings()

    async def resolve_or_create(self, candidate: ContactCandidate) -> ContactResolution:
        cleaned = clean_candidate(candidate)
        if not cleaned.name:
            raise ValidationError("Contact name is required", details={"field": "name"})

        resolution = await self._find_by_identity(cleaned)
        if resolution is None:
            resolution = await self._find_by_name(cleaned)

        if resolution is not None:
            filled = await self._hydrate(resolution.contact, cleaned)
            if filled:
                resolution.explanation.append("hydrated:" + ",".join(filled))
            logger.debug(
                "contact_resolved contact_id=%s matched_by=%s confidence=%.2f",
                resolution.contact.id,
                resolution.matched_by,
                resolution.confidence,
            )
            return resolution

        created = await self.repo.create(
            name=cleaned.name,
            title=cleaned.title,
            email=cleaned.email,
            phone=cleaned.phone,
            linkedin_url=cleaned.linkedin_url,
            notes=cleaned.notes,
        )
        logger.debug("contact_created contact_id=%s", created.id)
        return ContactResolution(
            contact=created,
            matched_by="created",
            confidence=1.0,
            was_created=True,
            explanation=["no_identity_or_name_match"],
        )

    async def _find_by_identity(self, cleaned: CleanedCandidate) -> Optional[ContactResolution]:
        if cleaned.linkedin_url:
            existing = await self.repo.get_by_linkedin(cleaned.linkedin_url)
            if existing:
                return ContactResolution(
                    contact=existing,
                    matched_by="linkedin",
                    confidence=self.thresholds.identity_confidence,
                    was_created=False,
                    explanation=["linkedin_url"],
                )

        if cleaned.email:
            existing = await self.repo.get_by_email(cleaned.email)
            if existing:
                return ContactResolution(
                    contact=existing,
                    matched_by="email",
                    confidence=self.thresholds.identity_confidence,
                    was_created=False,
                    explanation=["email"],
                )

        return None

    async def _find_by_name(self, cleaned: CleanedCandidate) -> Optional[ContactResolution]:
        parsed = parse_name(cleaned.name)
        if not parsed.normalized_full:
            return None

        pool = await self.repo.list_name_pool(
            full_name=cleaned.name,
            first_name=parsed.first_name,
            last_name=parsed.last_name,
            limit=self.thresholds.name_pool_limit,
        )

        best: Optional[Tuple[Contact, float, List[str]]] = None
        for existing in pool:
            name_score, name_rule = score_name_match(parsed, existing.name)
            if name_score <= 0:
                continue
            title_score, title_rule = score_title_match(cleaned.title, existing.title, self.thresholds)
            score = name_score + title_score
            # Strictly greater: the oldest contact wins ties.
            if best is None or score > best[1]:
                rules = [name_rule] + ([title_rule] if title_rule else [])
                best = (existing, score, rules)

        if best is None or best[1] < self.thresholds.name_match_threshold:
            return None

        existing, score, rules = best
        return ContactResolution(
            contact=existing,
            matched_by="name",
            confidence=min(self.thresholds.name_confidence_cap, round(score, 2)),
            was_created=False,
            explanation=rules,
        )

    async def _hydrate(self, contact: Contact, cleaned: CleanedCandidate) -> List[str]:
        """Fill null fields only; returns the names of the fields filled."""
        filled: List[str] = []
        for field_name in HYDRATED_FIELDS:
            incoming = getattr(cleaned, field_name)
            if incoming and not getattr(contact, field_name):
                setattr(contact, field_name, incoming)
                filled.append(field_name)
        if filled:
            await self.db.flush()
            await self.db.refresh(contact)
        return filled
