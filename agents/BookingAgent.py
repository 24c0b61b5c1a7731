"""Accommodation search links for a recommended base camp (Airbnb, Google Hotels)."""

from __future__ import annotations

import logging
import os
import re
from datetime import date, timedelta
from typing import Optional
from urllib.parse import quote, urlencode

from TravelPlan import LocationRecommendation, UserProfile

log = logging.getLogger(__name__)

PLATFORMS = {
    "airbnb": "https://www.airbnb.co.kr",
    "google_hotels": "https://www.google.com/travel",
}

# Area labels the recommender falls back to; never worth putting in a query.
_DEFAULT_AREAS = {"downtown", "도심"}

_ARTICLES_RE = re.compile(r"^(the|a|an|le|la|les|du|de|des)\s+|\s+(the|a|an|le|la|les|du|de|des)$",
                          re.IGNORECASE)
_VAGUE_RE = re.compile(r"\s*\b(근처|nearby|near|around|close to)\b\s*", re.IGNORECASE)
_DETAILED_ADDRESS_RE = re.compile(r"^\d+|(로|길|대로|번지)")


def date_range(travel_date: str, duration: int) -> tuple[str, str]:
    """(check_in, check_out) as YYYY-MM-DD; an unparseable start date means today."""
    try:
        check_in = date.fromisoformat(travel_date)
    except (TypeError, ValueError):
        log.warning("Unparseable travel date %r, searching from today", travel_date)
        check_in = date.today()
    check_out = check_in + timedelta(days=duration)
    return check_in.isoformat(), check_out.isoformat()


def clean_location(location: str) -> str:
    """Drop articles and vague words ("near", "근처") from an area label."""
    cleaned = _ARTICLES_RE.sub("", location.strip())
    cleaned = _VAGUE_RE.sub(" ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or location.strip()


def search_query(area: str, city: str) -> str:
    """City first, then the area, unless the area already leads with the city."""
    city = city.strip()
    location = clean_location(area)
    if city in _DEFAULT_AREAS:
        city = ""
    if location in _DEFAULT_AREAS:
        location = ""

    if _DETAILED_ADDRESS_RE.search(location) and city and city not in location:
        return f"{city} {location}".strip()
    if city and not location.startswith(city):
        return f"{city} {location}".strip()
    return location or city or "downtown"


def accommodation_search_url(rec: LocationRecommendation, platform: str, travel_date: str,
                             duration: int, travelers: int,
                             partner_id: Optional[str] = None) -> str:
    if platform not in PLATFORMS:
        raise ValueError(f"Unknown booking platform: {platform}")

    check_in, check_out = date_range(travel_date, duration)
    adults = max(1, travelers or 1)
    city = rec.city.strip()
    location = clean_location(rec.area)

    if platform == "airbnb":
        params = {"checkin": check_in, "checkout": check_out, "adults": adults, "source": "search"}
        partner_id = partner_id if partner_id is not None else os.getenv("AIRBNB_PARTNER_ID")
        if partner_id:
            params["partner"] = partner_id
        query = quote(search_query(rec.area, city), safe="")
        return f"{PLATFORMS['airbnb']}/s/{query}/homes?{urlencode(params)}"

    has_city = city and city not in _DEFAULT_AREAS
    has_location = location and location not in _DEFAULT_AREAS
    if has_city and has_location:
        q = f"Hotels in {location}, {city}"
    elif has_city:
        q = f"Hotels in {city}"
    elif has_location:
        q = f"Hotels in {location}"
    else:
        q = "Hotels"
    params = {"q": q, "checkin": check_in, "checkout": check_out, "adults": adults}
    return f"{PLATFORMS['google_hotels']}/search?{urlencode(params, quote_via=quote)}"


def booking_links(rec: LocationRecommendation, profile: UserProfile) -> dict[str, str]:
    return {
        platform: accommodation_search_url(rec, platform, profile.travel_date,
                                           profile.duration, profile.travelers)
        for platform in PLATFORMS
    }
