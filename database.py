"""
Saved-trip storage - SQLite (or any SQLAlchemy URL) via DATABASE_URL
"""
import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from dataclasses_json import dataclass_json
from sqlalchemy import JSON, Column, DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from security import sanitize_text
from TravelPlan import TravelPlan, TripContent, UserProfile

logger = logging.getLogger(__name__)

Base = declarative_base()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./trips.db")


def generate_id():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class Trip(Base):
    __tablename__ = "trips"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, index=True, nullable=False)
    city = Column(String, nullable=False)
    dates = Column(JSON, nullable=False)  # {"start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD"}
    itinerary = Column(JSON, default=list)
    hotel_info = Column(JSON, nullable=True)
    synopsis = Column(Text, default="")
    content = Column(JSON, nullable=True)  # full TripContent for exact reconstruction
    created_at = Column(DateTime(timezone=True), default=_utcnow)


@dataclass_json
@dataclass
class SavedTrip:
    id: str
    user_id: str
    city: str
    dates: dict[str, str]
    itinerary: list[dict]
    hotel_info: Optional[dict]
    synopsis: str
    content: Optional[dict]
    created_at: str

    @classmethod
    def from_row(cls, trip: Trip) -> "SavedTrip":
        return cls(
            id=trip.id,
            user_id=trip.user_id,
            city=trip.city,
            dates=dict(trip.dates or {}),
            itinerary=list(trip.itinerary or []),
            hotel_info=trip.hotel_info,
            synopsis=trip.synopsis or "",
            content=trip.content,
            created_at=trip.created_at.isoformat() if trip.created_at else "",
        )

    def to_content(self) -> Optional[TripContent]:
        """Rebuild the plan + profile exactly as they were saved, if stored."""
        if not self.content:
            return None
        return TripContent.from_dict(self.content)


def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine)


def init_db(bind=None):
    """Create tables on the given engine (the configured one by default)."""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    return bind


def get_db():
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Trip operations (every query is scoped to the owning user)
# ---------------------------------------------------------------------------

def save_trip(db: Session, user_id: str, profile: UserProfile, plan: TravelPlan,
              hotel_info: Optional[dict] = None) -> SavedTrip:
    city = sanitize_text(profile.destination)
    if not city:
        raise ValueError("Destination city is empty after sanitising")

    # JSON round-trip so only plain, serialisable data reaches the JSON column
    content = json.loads(TripContent(plan=plan, profile=profile).to_json())

    trip = Trip(
        user_id=user_id,
        city=city,
        dates={
            "start_date": profile.start_date().isoformat(),
            "end_date": profile.end_date().isoformat(),
        },
        itinerary=content["plan"]["itinerary"],
        hotel_info=hotel_info,
        synopsis=sanitize_text(plan.synopsis()),
        content=content,
    )
    try:
        db.add(trip)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Saving trip to %s for user %s failed", city, user_id)
        raise
    db.refresh(trip)
    logger.info("Saved trip %s (%s) for user %s", trip.id, city, user_id)
    return SavedTrip.from_row(trip)


def get_saved_trips(db: Session, user_id: str) -> list[SavedTrip]:
    rows = (
        db.query(Trip)
        .filter(Trip.user_id == user_id)
        .order_by(Trip.created_at.desc())
        .all()
    )
    return [SavedTrip.from_row(t) for t in rows]


def get_trip_by_id(db: Session, trip_id: str, user_id: str) -> Optional[SavedTrip]:
    trip = db.query(Trip).filter(Trip.id == trip_id, Trip.user_id == user_id).first()
    return SavedTrip.from_row(trip) if trip else None


def delete_trip(db: Session, trip_id: str, user_id: str) -> bool:
    """Delete one of the user's trips. False when no such trip belongs to them."""
    deleted = (
        db.query(Trip)
        .filter(Trip.id == trip_id, Trip.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("Deleted trip %s for user %s", trip_id, user_id)
    return bool(deleted)
