"""
Merchant location resolution.

Maps a free-text store address (or state name) onto one of the service-area
categories that resources are scoped to. An explicit category on the CRM
record always wins over text matching.
"""

import logging
import re
from typing import NamedTuple, Optional

from onboarding_scheduler.config import settings
from onboarding_scheduler.schemas.resource_schema import LocationCategory

logger = logging.getLogger(__name__)

# State and city tokens, lowercase. Short tokens only match whole words.
STATE_ALIASES: dict[str, list[str]] = {
    "Kuala Lumpur": [
        "kuala lumpur", "kl", "k.l", "wilayah persekutuan kuala lumpur", "wp kuala lumpur",
    ],
    "Selangor": [
        "selangor", "sel", "selangor darul ehsan", "petaling jaya", "pj", "subang",
        "shah alam", "klang", "puchong", "ampang", "cheras",
    ],
    "Putrajaya": ["putrajaya", "wilayah persekutuan putrajaya", "wp putrajaya"],
    "Penang": [
        "penang", "pulau pinang", "p. pinang", "pg", "pn", "georgetown", "george town",
        "butterworth", "balik pulau",
    ],
    "Johor": ["johor", "johor bahru", "jb", "j.b", "johor darul takzim"],
    "Perak": ["perak", "ipoh", "taiping"],
    "Kedah": ["kedah", "alor setar", "sungai petani"],
    "Kelantan": ["kelantan", "kota bharu"],
    "Terengganu": ["terengganu", "kuala terengganu"],
    "Pahang": ["pahang", "kuantan"],
    "Negeri Sembilan": ["negeri sembilan", "n. sembilan", "seremban"],
    "Melaka": ["melaka", "malacca"],
    "Sabah": ["sabah", "kota kinabalu"],
    "Sarawak": ["sarawak", "kuching", "miri"],
    "Perlis": ["perlis", "kangar"],
    "Labuan": ["labuan"],
}

# Checked in this order; the first category with a matching state wins.
CATEGORY_STATES: list[tuple[LocationCategory, list[str]]] = [
    (LocationCategory.KLANG_VALLEY, ["Kuala Lumpur", "Selangor", "Putrajaya"]),
    (LocationCategory.PENANG, ["Penang"]),
    (LocationCategory.JOHOR_BAHRU, ["Johor"]),
]

SHORT_TOKEN_MAX_LEN = 3


class LocationResolution(NamedTuple):
    category: LocationCategory
    min_lead_days: int


def lead_days_for(category: LocationCategory) -> int:
    """Minimum booking lead time for a service-area category."""
    lead = {
        LocationCategory.KLANG_VALLEY: settings.location.lead_days_klang_valley,
        LocationCategory.PENANG: settings.location.lead_days_penang,
        LocationCategory.JOHOR_BAHRU: settings.location.lead_days_johor_bahru,
        LocationCategory.OUTSIDE_SERVICE_AREA: settings.location.lead_days_outside,
    }
    return lead[category]


def _token_matches(text: str, token: str) -> bool:
    if len(token.replace(".", "")) <= SHORT_TOKEN_MAX_LEN:
        return re.search(rf"(?<![a-z0-9]){re.escape(token)}(?![a-z0-9])", text) is not None
    return token in text


def match_state(text: Optional[str]) -> Optional[str]:
    """Return the canonical state name mentioned in ``text``, if any.

    Examples:
        >>> match_state("23 Jalan SS2/24, Petaling Jaya")
        'Selangor'
        >>> match_state("Jalan Kelapa, Bukit Mertajam, Pulau Pinang")
        'Penang'
    """
    if not text:
        return None
    lowered = text.lower()
    for _category, states in CATEGORY_STATES:
        for state in states:
            if any(_token_matches(lowered, token) for token in STATE_ALIASES[state]):
                return state
    for state, aliases in STATE_ALIASES.items():
        if any(_token_matches(lowered, token) for token in aliases):
            return state
    return None


def parse_category(label: Optional[str]) -> Optional[LocationCategory]:
    """Parse a CRM category label, tolerating case and enum-name spellings."""
    if not label or not label.strip():
        return None
    cleaned = label.strip().lower()
    for category in LocationCategory:
        if cleaned in (category.value.lower(), category.name.lower()):
            return category
    return None


def categorize(address_or_state: Optional[str]) -> LocationCategory:
    state = match_state(address_or_state)
    for category, states in CATEGORY_STATES:
        if state in states:
            return category
    return LocationCategory.OUTSIDE_SERVICE_AREA


def resolve_location(
    address_or_state: Optional[str],
    crm_category: Optional[str] = None,
) -> LocationResolution:
    """Resolve a merchant's service-area category and its minimum lead days.

    Pure and total: unknown or empty input resolves to
    ``OUTSIDE_SERVICE_AREA`` rather than raising.
    """
    category = parse_category(crm_category)
    if category is None:
        category = categorize(address_or_state)
    else:
        logger.debug("Using CRM location category %s", category.value)
    return LocationResolution(category, lead_days_for(category))
