import copy
import os
import sys

import pytest

# Project root: needed for TravelPlan, database, security, main.
_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
# agents/ subdir: imported directly so planning_agent, AccomAgent, BookingAgent
# can be imported by name in tests without going through the package.
_agents_dir = os.path.join(_root, "agents")
for _p in (_root, _agents_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Keep main.py's import-time init_db() off the working directory.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from TravelPlan import TravelPlan, UserProfile


def make_place(name="Cafe Onion", address="Seongsu-ro, Seongdong-gu, Seoul",
               lat=37.5446, lng=127.0559, **extra):
    place = {
        "name": name,
        "address": address,
        "description": "Brick warehouse turned bakery",
        "docentScript": "Morning light falls across the old factory floor...",
        "lat": lat,
        "lng": lng,
        "imageKeyword": "cafe",
    }
    place.update(extra)
    return place


SAMPLE_PLAN = {
    "personalityTitle": "Midnight in Seoul",
    "personalityDescription": "A night owl chases neon and vinyl across the city.",
    "vibeScore": 87,
    "totalEstimatedBudget": 450000,
    "currency": "KRW",
    "localEtiquette": ["Do not tip", "Stand on the right of escalators"],
    "soundtrack": [
        {"title": "Seoul", "artist": "RM", "reason": "A love letter to the city"},
    ],
    "movies": [
        {"title": "Parasite", "director": "Bong Joon-ho", "year": "2019",
         "reason": "Shot on location in Seoul"},
    ],
    "itinerary": [
        {"day": 1, "places": [
            make_place(estimatedCost=8000.5, bestTime="09:00"),
            make_place("Gyeongbokgung", "161 Sajik-ro, Jongno-gu, Seoul", 37.5796, 126.9770,
                       imageKeyword="landmark"),
        ]},
        {"day": 2, "places": [
            make_place("LP Bar Gimpo", "Wausan-ro 94, Mapo-gu, Seoul", 37.5512, 126.9229,
                       imageKeyword="bar", outfitTip="Layer up"),
        ]},
    ],
}


@pytest.fixture
def plan_dict():
    return copy.deepcopy(SAMPLE_PLAN)


@pytest.fixture
def plan(plan_dict):
    return TravelPlan.from_dict(plan_dict)


@pytest.fixture
def profile():
    return UserProfile(
        age=26,
        gender="female",
        nationality="South Korea",
        hobbies=["film camera", "LP bars", "vintage shopping"],
        travel_style="balanced",
        destination="Seoul, South Korea",
        duration=2,
        travelers=2,
        travel_date="2026-06-01",
        activity_time="night-owl",
    )
