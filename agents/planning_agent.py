"""
Cinematic itinerary generator (litellm, single round-trip)

Turns a UserProfile into a TravelPlan with exactly one LLM call:

  1. Prompt construction   → destination, dates, traveller profile and the
                             binding content rules the model must follow
  2. Completion            → litellm.completion() with PLAN_SCHEMA attached
                             as a JSON-schema response format
  3. Parsing               → markdown fences stripped, json.loads
  4. Validation            → structural check of every required key/type
                             before anything becomes a TravelPlan

Failures surface as one of three GenerationError subclasses. There is no retry,
no backoff and no partial plan: the caller decides whether to ask again.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import litellm

from TravelPlan import TravelPlan, UserProfile

logger = logging.getLogger(__name__)

# Silence litellm's own verbose logging
litellm.suppress_debug_info = True
# Drop params unsupported by the active model (e.g. response_format on older models)
litellm.drop_params = True


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class GenerationError(Exception):
    """Base class for every way a plan request can fail."""


class TransportError(GenerationError):
    """The backend call itself failed (network, auth, quota, timeout)."""


class EmptyResponseError(GenerationError):
    """The backend answered but returned no text."""


class MalformedResponseError(GenerationError):
    """The backend returned text that is not a valid plan."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


# ---------------------------------------------------------------------------
# Configuration  (supports OpenAI, Gemini, Claude via provider)
# ---------------------------------------------------------------------------

_LLM_DEFAULTS = {
    "openai":    "gpt-4o-mini",
    "gemini":    "gemini-2.0-flash",
    "anthropic": "claude-sonnet-4-20250514",
}


@dataclass
class PlannerConfig:
    provider: str = "gemini"
    model: Optional[str] = None
    api_key: Optional[str] = None
    temperature: float = 0.7
    narrative_language: str = "Korean"
    timeout: Optional[float] = None

    @classmethod
    def from_env(cls) -> "PlannerConfig":
        timeout = os.getenv("LLM_TIMEOUT")
        return cls(
            provider=os.getenv("LLM_PROVIDER", "gemini").lower().strip(),
            model=os.getenv("LLM_MODEL") or None,
            api_key=os.getenv("LLM_API_KEY") or None,
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            narrative_language=os.getenv("PLAN_LANGUAGE", "Korean"),
            timeout=float(timeout) if timeout else None,
        )

    def model_name(self) -> str:
        """Return the litellm model string (provider/model format)."""
        provider = self.provider if self.provider in _LLM_DEFAULTS else "gemini"
        model = self.model or _LLM_DEFAULTS[provider]
        if provider == "openai":
            return model  # litellm uses bare model name for OpenAI
        return f"{provider}/{model}"


# ---------------------------------------------------------------------------
# Output schema  (what the backend is told to return)
# ---------------------------------------------------------------------------

IMAGE_KEYWORDS = (
    "cafe", "restaurant", "museum", "art", "nature", "park", "bar",
    "nightview", "shopping", "market", "photo", "landmark", "music",
)

_STRING = {"type": "string"}
_NUMBER = {"type": "number"}

PLACE_REQUIRED = ("name", "address", "description", "docentScript", "lat", "lng", "imageKeyword")
DAY_REQUIRED = ("day", "places")
MOVIE_REQUIRED = ("title", "director", "year", "reason")
SONG_REQUIRED = ("title", "artist", "reason")
PLAN_REQUIRED = (
    "personalityTitle", "personalityDescription", "vibeScore", "itinerary",
    "totalEstimatedBudget", "localEtiquette", "soundtrack", "movies",
)

PLAN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "personalityTitle": _STRING,
        "personalityDescription": _STRING,
        "vibeScore": _NUMBER,
        "totalEstimatedBudget": _NUMBER,
        "currency": _STRING,
        "movies": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {k: _STRING for k in MOVIE_REQUIRED},
                "required": list(MOVIE_REQUIRED),
            },
        },
        "soundtrack": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {k: _STRING for k in SONG_REQUIRED},
                "required": list(SONG_REQUIRED),
            },
        },
        "itinerary": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "day": _NUMBER,
                    "places": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": _STRING,
                                "address": _STRING,
                                "description": _STRING,
                                "docentScript": _STRING,
                                "lat": _NUMBER,
                                "lng": _NUMBER,
                                "imageKeyword": _STRING,
                                "estimatedCost": _NUMBER,
                                "bestTime": _STRING,
                                "outfitTip": _STRING,
                                "photoSpotTip": _STRING,
                            },
                            "required": list(PLACE_REQUIRED),
                        },
                    },
                },
                "required": list(DAY_REQUIRED),
            },
        },
        "localEtiquette": {"type": "array", "items": _STRING},
    },
    "required": list(PLAN_REQUIRED),
}


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_PLANNER_SYSTEM = """\
You are a world-class film director and travel curator. You write trips as if \
they were scenes of a classic movie, but every venue you name is real, open \
today and findable on Google Maps. You never invent places, films or songs. \
Always respond with valid JSON only."""


def build_plan_prompt(profile: UserProfile, language: str = "Korean") -> str:
    hobbies = ", ".join(profile.hobbies) or "none given"
    keywords = ", ".join(f'"{k}"' for k in IMAGE_KEYWORDS)
    return f"""Write a cinematic travel scenario for {profile.destination} built only from real places.

TRAVELLER
- Destination: {profile.destination}
- Start date: {profile.travel_date}
- Duration: {profile.duration} days
- Travellers: {profile.travelers}
- Profile: {profile.age} years old, {profile.gender}, nationality {profile.nationality}
- Interests: {hobbies}
- Travel style: {profile.travel_style}
- Most active: {profile.activity_time}

RULES
1. Real places only: recommend only restaurants, cafes and sights in {profile.destination} \
that are operating today. Fictional places are forbidden.
2. Exact addresses: the "address" field must be the real street address, searchable on Google Maps, \
and "lat"/"lng" must be that address's coordinates.
3. Cinematic framing: write "personalityTitle" and "personalityDescription" like a film's title and logline.
4. Language: write every text field in {language}, except "imageKeyword", which is a single \
English word chosen from: {keywords}.
5. Scenes: describe each place like a scene from a screenplay; "docentScript" is the narration.
6. Soundtrack: pick exactly 5 real songs (pop, jazz or local music) whose mood fits this trip.
7. Movies (facts required):
   - Prefer films actually shot in or set in {profile.destination}.
   - If there is none, recommend a classic representative of the country, or one that matches \
the season and mood of the trip.
   - Never fabricate filming locations or plot facts. Each "reason" must be verifiable.
8. Full days: {profile.duration} itinerary entries, one per day, each with at least 4-5 places \
covering morning, lunch, an afternoon activity, dinner and a night activity (bar, night view, ...).

Return ONLY valid JSON matching the response schema."""


# ---------------------------------------------------------------------------
# Parsing + validation
# ---------------------------------------------------------------------------

def _safe_json_parse(text: str) -> Any:
    """Extract and parse JSON from an LLM response that may include markdown fences."""
    cleaned = text.strip()
    if "```json" in cleaned:
        cleaned = cleaned.split("```json", 1)[1].split("```", 1)[0]
    elif "```" in cleaned:
        cleaned = cleaned.split("```", 1)[1].split("```", 1)[0]
    return json.loads(cleaned.strip())


def _is_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _require(obj: Any, keys: tuple[str, ...], path: str) -> dict:
    if not isinstance(obj, dict):
        raise MalformedResponseError(f"{path}: expected an object")
    missing = [k for k in keys if k not in obj or obj[k] is None]
    if missing:
        raise MalformedResponseError(f"{path}: missing required field(s) {', '.join(missing)}")
    return obj


def _check_str(obj: dict, key: str, path: str, optional: bool = False) -> None:
    value = obj.get(key)
    if value is None and optional:
        return
    if not isinstance(value, str):
        raise MalformedResponseError(f"{path}.{key}: expected a string")


def _check_number(obj: dict, key: str, path: str, optional: bool = False) -> None:
    value = obj.get(key)
    if value is None and optional:
        return
    if not _is_number(value):
        raise MalformedResponseError(f"{path}.{key}: expected a number")


def _validate_place(place: Any, path: str) -> None:
    _require(place, PLACE_REQUIRED, path)
    for key in ("name", "address", "description", "docentScript", "imageKeyword"):
        _check_str(place, key, path)
    _check_number(place, "lat", path)
    _check_number(place, "lng", path)
    if not -90 <= place["lat"] <= 90 or not -180 <= place["lng"] <= 180:
        raise MalformedResponseError(f"{path}: coordinates out of range")
    _check_number(place, "estimatedCost", path, optional=True)
    for key in ("bestTime", "outfitTip", "photoSpotTip"):
        _check_str(place, key, path, optional=True)


def validate_plan_payload(data: Any) -> dict:
    """Structurally check a decoded plan and return it ready for TravelPlan.from_dict.

    Raises MalformedResponseError naming the first offending JSON path. The
    only normalisation is movie years sent as numbers becoming strings.
    """
    _require(data, PLAN_REQUIRED, "plan")
    _check_str(data, "personalityTitle", "plan")
    _check_str(data, "personalityDescription", "plan")
    _check_number(data, "vibeScore", "plan")
    _check_number(data, "totalEstimatedBudget", "plan")
    _check_str(data, "currency", "plan", optional=True)

    etiquette = data["localEtiquette"]
    if not isinstance(etiquette, list) or not all(isinstance(t, str) for t in etiquette):
        raise MalformedResponseError("plan.localEtiquette: expected a list of strings")

    for field_name, required in (("soundtrack", SONG_REQUIRED), ("movies", MOVIE_REQUIRED)):
        entries = data[field_name]
        if not isinstance(entries, list):
            raise MalformedResponseError(f"plan.{field_name}: expected a list")
        for i, entry in enumerate(entries):
            path = f"plan.{field_name}[{i}]"
            _require(entry, required, path)
            if field_name == "movies" and _is_number(entry["year"]):
                entry["year"] = str(int(entry["year"]))
            for key in required:
                _check_str(entry, key, path)

    itinerary = data["itinerary"]
    if not isinstance(itinerary, list):
        raise MalformedResponseError("plan.itinerary: expected a list")
    for i, day in enumerate(itinerary):
        path = f"plan.itinerary[{i}]"
        _require(day, DAY_REQUIRED, path)
        _check_number(day, "day", path)
        day["day"] = int(day["day"])
        places = day["places"]
        if not isinstance(places, list) or not places:
            raise MalformedResponseError(f"{path}.places: expected a non-empty list")
        for j, place in enumerate(places):
            _validate_place(place, f"{path}.places[{j}]")

    return data


def parse_plan_response(text: str) -> TravelPlan:
    """Raw backend text → TravelPlan, or MalformedResponseError."""
    try:
        data = _safe_json_parse(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.warning("Plan response is not valid JSON: %s", exc)
        logger.debug("Raw plan response: %s", text)
        raise MalformedResponseError("plan response is not valid JSON", raw_text=text) from exc

    try:
        validate_plan_payload(data)
    except MalformedResponseError as exc:
        logger.warning("Plan response failed validation: %s", exc)
        logger.debug("Raw plan response: %s", text)
        exc.raw_text = text
        raise

    return TravelPlan.from_dict(data)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class PlanRequestClient:
    """Stateless planner: one profile in, one validated TravelPlan out.

    ``completion`` defaults to ``litellm.completion``; tests pass a fake with
    the same call signature.
    """

    def __init__(self, config: Optional[PlannerConfig] = None,
                 completion: Optional[Callable[..., Any]] = None):
        self.config = config or PlannerConfig.from_env()
        self._completion = completion or litellm.completion

    def _llm_call(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single completion call and return the text content."""
        kwargs: dict[str, Any] = {
            "model": self.config.model_name(),
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.config.temperature,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "travel_plan", "schema": PLAN_SCHEMA},
            },
        }
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key
        if self.config.timeout is not None:
            kwargs["timeout"] = self.config.timeout

        try:
            response = self._completion(**kwargs)
        except Exception as exc:
            logger.error("Plan LLM call failed (%s): %s", kwargs["model"], exc)
            raise TransportError(f"plan backend call failed: {exc}") from exc

        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError):
            text = None
        if not text or not text.strip():
            logger.error("Plan LLM call returned no text (%s)", kwargs["model"])
            raise EmptyResponseError("plan backend returned no text")
        return text

    def generate(self, profile: UserProfile) -> TravelPlan:
        prompt = build_plan_prompt(profile, self.config.narrative_language)
        raw = self._llm_call(_PLANNER_SYSTEM, prompt)
        plan = parse_plan_response(raw)
        if len(plan.itinerary) != profile.duration:
            logger.warning("Requested %d days for %s, got %d",
                           profile.duration, profile.destination, len(plan.itinerary))
        return plan
