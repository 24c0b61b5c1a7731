"""FastAPI Backend - cinematic travel tickets"""
import logging
import os
import threading

# Load .env before anything else
from dotenv import load_dotenv
load_dotenv()

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from agents import planning_agent
from agents.AccomAgent import LocationRecommender
from agents.BookingAgent import booking_links
from database import delete_trip, get_db, get_saved_trips, get_trip_by_id, init_db, save_trip
from TravelPlan import ACTIVITY_TIMES, GENDERS, TRAVEL_STYLES, TravelPlan, UserProfile

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize database
init_db()

# FastAPI app
app = FastAPI(
    title="Cinematic Trip Ticket API",
    description="AI-generated movie-style itineraries, base-camp recommendations and saved tickets",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

MAX_DURATION = 7
MAX_TRAVELERS = 10

# Profiles currently being planned; a double-submitted form gets a 409
_in_flight: set[str] = set()
_in_flight_lock = threading.Lock()

_planner: Optional[planning_agent.PlanRequestClient] = None


def get_planner() -> planning_agent.PlanRequestClient:
    global _planner
    if _planner is None:
        _planner = planning_agent.PlanRequestClient(planning_agent.PlannerConfig.from_env())
    return _planner


# Pydantic models
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileRequest(_CamelModel):
    age: int = Field(ge=0, le=100)
    gender: Literal[GENDERS] = "other"
    nationality: str = ""
    hobbies: List[str] = []
    travel_style: Literal[TRAVEL_STYLES] = "balanced"
    destination: str
    duration: int = 3
    travelers: int = 1
    travel_date: date
    activity_time: Literal[ACTIVITY_TIMES] = "night-owl"

    def to_profile(self) -> UserProfile:
        """Clamp the user-editable counts and sanitise free text."""
        profile = UserProfile(
            age=self.age,
            gender=self.gender,
            nationality=self.nationality,
            hobbies=list(self.hobbies),
            travel_style=self.travel_style,
            destination=self.destination,
            duration=min(max(self.duration, 1), MAX_DURATION),
            travelers=min(max(self.travelers, 1), MAX_TRAVELERS),
            travel_date=self.travel_date.isoformat(),
            activity_time=self.activity_time,
        ).with_sanitised_text()
        if not profile.destination:
            raise HTTPException(status_code=422, detail="Destination is required")
        return profile


class RecommendationRequest(_CamelModel):
    plan: Dict[str, Any]
    profile: ProfileRequest
    locale: str = "en"


class TripSaveRequest(_CamelModel):
    plan: Dict[str, Any]
    profile: ProfileRequest
    hotel_info: Optional[Dict[str, Any]] = None


# Helper functions
def _plan_from_body(data: Dict[str, Any]) -> TravelPlan:
    """A plan posted back by the client gets the same checks as one from the model."""
    try:
        return TravelPlan.from_dict(planning_agent.validate_plan_payload(data))
    except planning_agent.MalformedResponseError as e:
        raise HTTPException(status_code=422, detail=f"Invalid plan: {e}")


# ---------------------------------------------------------------------------
# Planning endpoints
# ---------------------------------------------------------------------------

@app.post("/plans")
def create_plan(body: ProfileRequest,
                planner: planning_agent.PlanRequestClient = Depends(get_planner)):
    """Generate a plan for the profile. Failures never expose backend text."""
    profile = body.to_profile()
    key = profile.to_json()

    with _in_flight_lock:
        if key in _in_flight:
            raise HTTPException(status_code=409, detail="Planning is already in progress")
        _in_flight.add(key)

    try:
        plan = planner.generate(profile)
    except planning_agent.MalformedResponseError:
        logger.warning("Unusable plan for %s", profile.destination)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The scenario came back in an unexpected format. Please try again.",
        )
    except planning_agent.GenerationError as e:
        logger.error("Plan generation failed for %s: %s", profile.destination, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Something went wrong while writing your scenario. Please try again shortly.",
        )
    finally:
        with _in_flight_lock:
            _in_flight.discard(key)

    return {"plan": plan.to_dict(), "profile": profile.to_dict()}


@app.post("/plans/recommendation")
def recommend_base_camp(body: RecommendationRequest):
    plan = _plan_from_body(body.plan)
    profile = body.profile.to_profile()
    rec = LocationRecommender.recommend(plan, profile.destination, body.locale)
    return {
        **rec.to_dict(),
        "searchTerm": f"{rec.city} {rec.area}".strip(),
        "bookingLinks": booking_links(rec, profile),
    }


# ---------------------------------------------------------------------------
# Saved trips
# ---------------------------------------------------------------------------

@app.get("/trips")
def list_trips(user_id: str, db: Session = Depends(get_db)):
    return [t.to_dict() for t in get_saved_trips(db, user_id)]


@app.post("/trips", status_code=status.HTTP_201_CREATED)
def create_trip(body: TripSaveRequest, user_id: str, db: Session = Depends(get_db)):
    plan = _plan_from_body(body.plan)
    profile = body.profile.to_profile()
    try:
        saved = save_trip(db, user_id, profile, plan, hotel_info=body.hotel_info)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return saved.to_dict()


@app.get("/trips/{trip_id}")
def get_trip(trip_id: str, user_id: str, db: Session = Depends(get_db)):
    trip = get_trip_by_id(db, trip_id, user_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip.to_dict()


@app.delete("/trips/{trip_id}")
def remove_trip(trip_id: str, user_id: str, db: Session = Depends(get_db)):
    if not delete_trip(db, trip_id, user_id):
        raise HTTPException(status_code=404, detail="Trip not found")
    return {"message": "Trip deleted successfully"}


@app.get("/health")
def health():
    config = get_planner().config
    return {
        "status": "ok",
        "version": "1.0.0",
        "llm": config.model_name(),
        "llm_provider": config.provider,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
