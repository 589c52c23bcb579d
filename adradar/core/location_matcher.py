"""
Best-effort matching of free-text ad locations against a monitor's filter.

Only BR and US have country patterns, and they are mutually exclusive:
two-letter codes valid in both (AL, PA, MA, SC, MT, MS, ...) are left out,
so "Maceió, AL" is never rejected as American. An ad is only rejected on
country when it looks like the other country and not like its own.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern

from adradar.domain.entities.monitor import WORLDWIDE

COUNTRY_MISMATCH = "location_country_mismatch"
STATE_MISMATCH = "location_state_mismatch"
CITY_MISMATCH = "location_city_mismatch"

COUNTRY_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "BR": [
        re.compile(r"\b(AC|AP|AM|BA|CE|DF|ES|GO|MG|PB|PR|PE|PI|RJ|RN|RS|RO|RR|SP|SE|TO)\b"),
        re.compile(
            r"\b(Acre|Alagoas|Amapá|Amazonas|Bahia|Ceará|Espírito Santo|Goiás|Maranhão|Mato Grosso"
            r"|Minas Gerais|Pará|Paraíba|Paraná|Pernambuco|Piauí|Rio de Janeiro|Rio Grande|Rondônia"
            r"|Roraima|Santa Catarina|São Paulo|Sergipe|Tocantins|Distrito Federal)\b",
            re.IGNORECASE,
        ),
        re.compile(r"\b(Brasil|Brazil)\b", re.IGNORECASE),
    ],
    "US": [
        re.compile(
            r"\b(AK|AZ|AR|CA|CO|CT|DE|FL|GA|HI|ID|IL|IN|IA|KS|KY|LA|ME|MD|MI|MN|MO|NE|NV|NH|NJ|NM"
            r"|NY|NC|ND|OH|OK|OR|RI|SD|TN|TX|UT|VT|VA|WA|WV|WI|WY)\b"
        ),
        re.compile(r"\b(United States|USA)\b", re.IGNORECASE),
    ],
}


@dataclass(frozen=True)
class LocationFilter:
    country: Optional[str] = None
    state_region: Optional[str] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class LocationMatch:
    match: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.match


MATCH = LocationMatch(match=True)


def _matches_any(patterns: List[Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def match_location(ad_location: Optional[str], location_filter: LocationFilter) -> LocationMatch:
    """
    Decide whether an ad location satisfies a filter.

    Args:
        ad_location: Location text scraped from the ad, may be empty.
        location_filter: Country / state / city from the monitor.

    Returns:
        LocationMatch; reason is one of the *_MISMATCH constants on rejection.
    """
    country = location_filter.country
    if not country or country == WORLDWIDE:
        return MATCH

    # Missing location is not evidence of a mismatch
    if not ad_location or not ad_location.strip():
        return MATCH

    location = ad_location.strip()

    own_patterns = COUNTRY_PATTERNS.get(country)
    if own_patterns:
        matches_own = _matches_any(own_patterns, location)
        matches_other = any(
            _matches_any(patterns, location)
            for other, patterns in COUNTRY_PATTERNS.items()
            if other != country
        )
        if matches_other and not matches_own:
            return LocationMatch(match=False, reason=COUNTRY_MISMATCH)

    if location_filter.state_region:
        state = location_filter.state_region.strip()
        if not re.search(rf"\b{re.escape(state)}\b", location, re.IGNORECASE):
            return LocationMatch(match=False, reason=STATE_MISMATCH)

    if location_filter.city:
        if location_filter.city.strip().lower() not in location.lower():
            return LocationMatch(match=False, reason=CITY_MISMATCH)

    return MATCH
