"""
Base-camp recommendation: where to sleep given a finished itinerary.

No LLM and no API calls. The recommender looks at every place in the plan,
finds the one nearest the centroid of all stops, labels each place with a
search-friendly "area" (station, district or address fragment) and picks the
area most stops share.

Usage:
    from agents.AccomAgent import LocationRecommender

    rec = LocationRecommender.recommend(plan, "Seoul, South Korea")
    rec.area, rec.city, rec.reason
"""

from __future__ import annotations

import logging
import re
from typing import Callable, NamedTuple, Optional

from TravelPlan import LocationRecommendation, Place, TravelPlan

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Locale copy
# ---------------------------------------------------------------------------

LOCALES: dict[str, dict[str, str]] = {
    "en": {
        "default": "downtown",
        "nearby": "{name} nearby",
        "empty": "Insufficient itinerary data, so the city centre is recommended.",
        "cluster": ('Multiple itinerary stops cluster around "{area}"; basing yourself '
                    "there minimizes transit time."),
        "anchor": ('"{area}" is positioned at the center of all stops, near "{place}", '
                   "with good transit access and lodging density."),
    },
    "ko": {
        "default": "도심",
        "nearby": "{name} 근처",
        "empty": "일정 정보가 부족하여 도심 지역을 추천합니다.",
        "cluster": ('여행 일정의 주요 장소들이 "{area}" 지역에 집중되어 있어, 이 지역을 '
                    "베이스캠프로 하면 이동 시간을 최소화할 수 있습니다."),
        "anchor": ('모든 일정 장소의 중심에 위치한 "{place}" 근처 "{area}" 지역입니다. '
                   "교통이 편리하고 숙소 선택의 폭이 넓은 위치입니다."),
    },
}


def _copy(locale: str) -> dict[str, str]:
    return LOCALES.get(locale, LOCALES["en"])


# ---------------------------------------------------------------------------
# Area extraction rules  (first match wins, in table order)
# ---------------------------------------------------------------------------

_STATION_PATTERNS = [
    re.compile(r"([가-힣A-Za-z]+역)(?![가-힣])"),                   # 홍대입구역, 강남역
    re.compile(r"([\u3040-\u30ff\u4e00-\u9fff]+駅)"),              # 新宿駅
    re.compile(r"([A-Za-z가-힣][\w'-]*)\s+Station\b", re.IGNORECASE), # Shinjuku Station
]

_DISTRICT_PATTERNS = [
    re.compile(r"([가-힣A-Za-z]+지구)"),                            # 마레지구
    re.compile(r"([가-힣]+동)(?![가-힣])"),                          # 청담동, 성수동2가
    re.compile(r"([가-힣A-Za-z]+시티)"),                            # 디지털미디어시티
    re.compile(r"\b([A-Z][\w'-]*-dong)\b"),                         # Myeong-dong
    re.compile(r"\b([A-Z][\w'-]*\s+(?:District|Quarter))\b"),       # Marais District
    re.compile(r"\b([A-Z][\w'-]*\s+(?:City|Center|Centre))\b"),     # Rockefeller Center
]

_STATION_WORD = re.compile(r"(역|駅|station)", re.IGNORECASE)
_DISTRICT_WORD = re.compile(r"(지구|[가-힣]동(?![가-힣])|-dong$)", re.IGNORECASE)
_STATION_SUFFIX = re.compile(r"\s*Station", re.IGNORECASE)
_LOT_PREFIX = re.compile(r"^\d+(?:-\d+)?(?:번지)?[-\s]*")

# Street-level tokens: a segment containing one is an address, not a city.
_STREET_TOKEN = re.compile(
    r"(로|길|대로|번지)|\b(street|st|avenue|ave|road|rd|boulevard|blvd|lane|rue|ro|gil|daero)\b",
    re.IGNORECASE,
)


def _search(patterns: list[re.Pattern], *texts: str) -> Optional[str]:
    for text in texts:
        if not text:
            continue
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return match.group(1)
    return None


def station_area(name: str, address: str, locale: str) -> Optional[str]:
    """Transit station in the name, then the address, without the word "Station"."""
    found = _search(_STATION_PATTERNS, name, address)
    if found is None:
        return None
    return _STATION_SUFFIX.sub("", found).strip() or None


def district_area(name: str, address: str, locale: str) -> Optional[str]:
    return _search(_DISTRICT_PATTERNS, name, address)


def address_area(name: str, address: str, locale: str) -> Optional[str]:
    """Decompose the first comma segment of the address.

    House and lot numbers are dropped first; then a station word, a district
    word, the last two words of a long segment, or the segment itself.
    """
    if not address or not address.strip():
        return None
    segment = _LOT_PREFIX.sub("", address.split(",")[0].strip())
    words = segment.split()

    for word in words:
        if _STATION_WORD.search(word):
            stripped = _STATION_SUFFIX.sub("", word).strip()
            if stripped:
                return stripped
    for word in words:
        if _DISTRICT_WORD.search(word):
            return word
    if len(words) > 2:
        return " ".join(words[-2:])
    return segment.strip() or _copy(locale)["default"]


def name_area(name: str, address: str, locale: str) -> Optional[str]:
    if name and len(name) <= 10:
        return _copy(locale)["nearby"].format(name=name)
    return None


def default_area(name: str, address: str, locale: str) -> Optional[str]:
    return _copy(locale)["default"]


class AreaRule(NamedTuple):
    name: str
    extract: Callable[[str, str, str], Optional[str]]


AREA_RULES: list[AreaRule] = [
    AreaRule("station", station_area),
    AreaRule("district", district_area),
    AreaRule("address", address_area),
    AreaRule("name", name_area),
    AreaRule("default", default_area),
]


def extract_area(name: str, address: str, locale: str = "en") -> str:
    """Search-friendly area label for one place (station > district > address > name)."""
    name = (name or "").strip()
    address = (address or "").strip()
    for rule in AREA_RULES:
        area = rule.extract(name, address, locale)
        if area:
            return area
    return _copy(locale)["default"]


def _is_city_like(segment: str, max_length: int) -> bool:
    return bool(segment) and len(segment) < max_length and not segment[0].isdigit() \
        and not _STREET_TOKEN.search(segment)


def extract_city(address: str, destination: str, locale: str = "en") -> str:
    """City for the booking search: the destination's first segment, else a guess from the address."""
    if destination:
        city = destination.split(",")[0].strip()
        if city:
            return city

    if address:
        parts = address.split(",")
        if len(parts) >= 2:
            last = parts[-1].strip()
            if _is_city_like(last, 20):
                return last
        first = parts[0].strip()
        if _is_city_like(first, 30):
            return first

    return _copy(locale)["default"]


# ---------------------------------------------------------------------------
# Recommender
# ---------------------------------------------------------------------------

def _anchor_place(places: list[Place]) -> Place:
    """Place nearest the centroid in raw degree space; the first one wins a tie."""
    avg_lat = sum(p.lat for p in places) / len(places)
    avg_lng = sum(p.lng for p in places) / len(places)
    log.debug("Itinerary centroid: %.5f, %.5f", avg_lat, avg_lng)

    closest = places[0]
    min_distance = float("inf")
    for place in places:
        distance = ((place.lat - avg_lat) ** 2 + (place.lng - avg_lng) ** 2) ** 0.5
        if distance < min_distance:
            min_distance = distance
            closest = place
    return closest


class LocationRecommender:
    """Pure, deterministic base-camp picker. Never raises on a valid TravelPlan."""

    @staticmethod
    def recommend(plan: TravelPlan, destination: str, locale: str = "en") -> LocationRecommendation:
        copy = _copy(locale)
        default = copy["default"]
        places = plan.all_places()

        if not places:
            log.info("No places in itinerary for %r; recommending %s", destination, default)
            return LocationRecommendation(
                area=default,
                city=extract_city("", destination, locale),
                reason=copy["empty"],
            )

        anchor = _anchor_place(places)

        # dict keeps first-seen order, so equal counts go to the earliest area
        area_counts: dict[str, int] = {}
        for place in places:
            area = extract_area(place.name, place.address, locale)
            area_counts[area] = area_counts.get(area, 0) + 1

        most_common = default
        max_count = 0
        for area, count in area_counts.items():
            if count > max_count and area != default:
                max_count = count
                most_common = area

        closest_area = extract_area(anchor.name, anchor.address, locale)
        area = most_common if most_common != default else closest_area
        city = extract_city(anchor.address, destination, locale)

        if most_common != default and most_common != closest_area:
            reason = copy["cluster"].format(area=area)
        else:
            reason = copy["anchor"].format(area=area, place=anchor.name)

        log.debug("Base camp for %r: %s (anchor %r, counts %s)",
                  destination, area, anchor.name, area_counts)
        return LocationRecommendation(area=area or default, city=city or default, reason=reason)
