"""Text canonicalization shared by contact resolution, dedup and narrative compilation.

Rules:
- Comparison forms are lowercase with whitespace collapsed.
- Emails are filtered, not validated: anything that is not ``local@domain.tld`` is dropped.
- Websites and LinkedIn URLs collapse to ``https://host/path`` with ``www.`` and trailing
  slashes removed. Parsing never raises; unparseable input falls back to a regex strip.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from portfolio_crm.utils.nicknames import canonicalize_first_name

_COMPARISON_STRIP_RE = re.compile(r"[^a-z0-9\s'-]")
_LOOKUP_STRIP_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_TRAILING_SLASHES_RE = re.compile(r"/+$")


@dataclass(frozen=True)
class ParsedName:
    normalized_full: str
    first_name: str
    last_name: str
    canonical_first_name: str


def trim_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_for_comparison(value: Optional[str]) -> str:
    """Lowercase, replace characters outside ``[a-z0-9\\s'-]`` with spaces, collapse whitespace."""
    lowered = (value or "").lower()
    cleaned = _COMPARISON_STRIP_RE.sub(" ", lowered)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def normalize_text(value: Optional[str]) -> str:
    """Trim, lowercase and collapse whitespace (organization names and locations)."""
    return _WHITESPACE_RE.sub(" ", (value or "").strip().lower())


def normalize_lookup(value: Optional[str]) -> str:
    """Alphanumeric-and-space form used for narrative keys and slugs."""
    lowered = (value or "").lower()
    cleaned = _LOOKUP_STRIP_RE.sub(" ", lowered)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def slugify_label(value: Optional[str], max_length: int = 40) -> str:
    return normalize_lookup(value).replace(" ", "-")[:max_length]


def normalize_email(value: Optional[str]) -> Optional[str]:
    normalized = (value or "").strip().lower()
    if not normalized:
        return None
    return normalized if _EMAIL_RE.match(normalized) else None


def _host_and_path(value: str) -> Optional[tuple[str, str]]:
    with_scheme = value if _SCHEME_RE.match(value) else f"https://{value}"
    try:
        parsed = urlsplit(with_scheme)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None
    if not host or " " in host:
        return None
    if host.startswith("www."):
        host = host[4:]
    path = _TRAILING_SLASHES_RE.sub("", parsed.path or "")
    return host, path


def normalize_website_or_linkedin(value: Optional[str]) -> Optional[str]:
    """Canonical ``https://host/path`` form, or ``None`` for blank input."""
    trimmed = (value or "").strip()
    if not trimmed:
        return None

    parts = _host_and_path(trimmed)
    if parts is None:
        return _TRAILING_SLASHES_RE.sub("", trimmed.lower())
    host, path = parts
    return f"https://{host}{path}"


def website_comparison_key(value: Optional[str]) -> str:
    """Scheme-less ``host/path`` key; empty string when there is no website."""
    trimmed = (value or "").strip().lower()
    if not trimmed:
        return ""

    parts = _host_and_path(trimmed)
    if parts is None:
        stripped = re.sub(r"^https?://(www\.)?", "", trimmed)
        stripped = _TRAILING_SLASHES_RE.sub("", stripped)
        return re.sub(r"/+", "/", stripped)
    host, path = parts
    return f"{host}{path}"


def parse_name(value: Optional[str]) -> ParsedName:
    normalized_full = normalize_for_comparison(value)
    parts = [part for part in normalized_full.split(" ") if part]
    first_name = parts[0] if parts else ""
    last_name = parts[-1] if len(parts) > 1 else ""
    return ParsedName(
        normalized_full=normalized_full,
        first_name=first_name,
        last_name=last_name,
        canonical_first_name=canonicalize_first_name(first_name),
    )
