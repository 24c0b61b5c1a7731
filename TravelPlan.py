from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Optional

from dataclasses_json import LetterCase, dataclass_json

from security import validate_string_array, validate_text_input

GENDERS = ("male", "female", "non-binary", "other")
TRAVEL_STYLES = ("budget", "luxury", "balanced")
ACTIVITY_TIMES = ("early-bird", "night-owl")


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class UserProfile:
    age: int
    gender: str
    nationality: str
    hobbies: list[str]
    travel_style: str
    destination: str
    duration: int
    travelers: int
    travel_date: str  # YYYY-MM-DD
    activity_time: str

    def start_date(self) -> date:
        return date.fromisoformat(self.travel_date)

    def end_date(self) -> date:
        """Check-out day: the start date plus one day per trip day."""
        return self.start_date() + timedelta(days=self.duration)

    def with_sanitised_text(self) -> "UserProfile":
        """Copy with destination, nationality and hobbies passed through the text filters."""
        return replace(
            self,
            destination=validate_text_input(self.destination, 200),
            nationality=validate_text_input(self.nationality, 100),
            hobbies=validate_string_array(self.hobbies, 20),
        )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Place:
    name: str
    address: str
    description: str
    docent_script: str
    lat: float
    lng: float
    image_keyword: str
    # None means "not estimated", which is not the same as free.
    estimated_cost: Optional[float] = None
    best_time: Optional[str] = None
    outfit_tip: Optional[str] = None
    photo_spot_tip: Optional[str] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class DayItinerary:
    day: int
    places: list[Place]


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Song:
    title: str
    artist: str
    reason: str


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Movie:
    title: str
    director: str
    year: str
    reason: str


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TravelPlan:
    personality_title: str
    personality_description: str
    vibe_score: float
    itinerary: list[DayItinerary]
    total_estimated_budget: float
    local_etiquette: list[str]
    soundtrack: list[Song]
    movies: list[Movie]
    currency: Optional[str] = None

    def all_places(self) -> list[Place]:
        """Every place of every day, in itinerary order."""
        return [place for day in self.itinerary for place in day.places]

    def synopsis(self) -> str:
        return f"{self.personality_title}\n\n{self.personality_description}"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TripContent:
    plan: TravelPlan
    profile: UserProfile


@dataclass_json
@dataclass
class LocationRecommendation:
    area: str
    city: str
    reason: str
