"""Fixed nickname -> canonical first name table."""

from types import MappingProxyType
from typing import Mapping

NICKNAME_GROUPS = (
    ("william", ("bill", "billy", "will", "willy", "liam")),
    ("robert", ("bob", "bobby", "rob", "robbie")),
    ("richard", ("rick", "ricky", "rich", "dick")),
    ("margaret", ("maggie", "meg", "peggy")),
    ("elizabeth", ("liz", "beth", "lizzie", "eliza")),
    ("james", ("jim", "jimmy")),
    ("joseph", ("joe", "joey")),
    ("michael", ("mike", "mikey")),
    ("andrew", ("andy", "drew")),
    ("katherine", ("kate", "katie", "kathy", "kat")),
    ("christopher", ("chris",)),
    ("daniel", ("dan", "danny")),
    ("anthony", ("tony",)),
    ("steven", ("steve",)),
    ("thomas", ("tom", "tommy")),
    ("alexander", ("alex", "xander")),
    ("john", ("johnny", "jack")),
    ("edward", ("ed", "eddie", "ted", "teddy")),
)


def _build_nickname_map() -> Mapping[str, str]:
    mapping = {}
    for canonical, aliases in NICKNAME_GROUPS:
        mapping[canonical] = canonical
        for alias in aliases:
            mapping[alias] = canonical
    return MappingProxyType(mapping)


# Read-only after import.
NICKNAME_MAP: Mapping[str, str] = _build_nickname_map()


def canonicalize_first_name(name: str) -> str:
    """Return the canonical form of a lowercase first name; unknown names map to themselves."""
    return NICKNAME_MAP.get(name, name)
