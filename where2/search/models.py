from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Mapping

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

REASON_SEPARATOR = " • "


class PriceLevel(str, Enum):
    low = "Low"
    mid = "Mid"
    high = "High"
    lux = "Lux"


class NoiseLevel(str, Enum):
    quiet = "Quiet"
    moderate = "Moderate"
    lively = "Lively"


class OpenState(str, Enum):
    open = "open"
    closed = "closed"
    unknown = "unknown"


class ResultSource(str, Enum):
    attribute = "attribute"
    semantic = "semantic"
    both = "both"


class Weekday(IntEnum):
    sunday = 0
    monday = 1
    tuesday = 2
    wednesday = 3
    thursday = 4
    friday = 5
    saturday = 6

    @classmethod
    def of(cls, moment: datetime) -> "Weekday":
        # datetime.weekday() counts from Monday=0
        return cls((moment.weekday() + 1) % 7)


# ── Venues ───────────────────────────────────────────────────────────────


class WeeklySchedule(BaseModel):
    """Opening hours, one entry per weekday indexed by ``Weekday``."""

    days: tuple[str, str, str, str, str, str, str]

    def entry(self, day: Weekday) -> str:
        return self.days[day]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "WeeklySchedule":
        lowered = {str(k).strip().lower(): v for k, v in mapping.items()}
        missing = [d.name for d in Weekday if d.name not in lowered]
        if missing:
            raise ValueError(f"Opening hours missing for: {', '.join(missing)}")
        return cls(days=tuple(str(lowered[d.name]).strip() for d in Weekday))


class Venue(BaseModel):
    id: str
    name: str
    category: str
    area: str
    latitude: float
    longitude: float
    tags: list[str] = Field(default_factory=list)
    cuisine: list[str] = Field(default_factory=list)
    price_level: PriceLevel
    noise: NoiseLevel | None = None
    rating: float = Field(..., ge=0.0, le=5.0)
    near_transit: bool = False
    transit_station: str | None = None
    transit_walk_min: int | None = None
    opening_hours: WeeklySchedule | None = None
    highlights: str = ""
    embedding: list[float] | None = Field(default=None, exclude=True, repr=False)

    @model_validator(mode="after")
    def _discard_transit_details(self) -> "Venue":
        if not self.near_transit:
            self.transit_station = None
            self.transit_walk_min = None
        return self


class Location(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class FilterSet(BaseModel):
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    price_level: PriceLevel | None = None
    area: str | None = None
    near_transit: bool | None = None
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    cuisine: list[str] = Field(default_factory=list)
    noise: NoiseLevel | None = None
    open_now: bool = False


class QueryContext(BaseModel):
    filters: FilterSet = Field(default_factory=FilterSet)
    location: Location | None = None
    requester_id: str | None = None
    now: datetime


class TagCount(BaseModel):
    tag: str
    count: int = Field(default=0, ge=0)


class PreferenceProfile(BaseModel):
    tags: list[TagCount] = Field(default_factory=list)
    preferred_price_level: PriceLevel | None = None


# ── Results ──────────────────────────────────────────────────────────────


class ScoredResult(BaseModel):
    venue: Venue
    source: ResultSource
    distance_km: float = 0.0
    open_state: OpenState = OpenState.unknown
    reasons: list[str] = Field(default_factory=list)
    attribute_score: float | None = None
    semantic_score: float | None = None
    combined_score: float | None = None
    final_score: float | None = None

    @computed_field
    @property
    def reason_text(self) -> str:
        return REASON_SEPARATOR.join(self.reasons)


class WeatherContext(BaseModel):
    temp: str
    outdoor: bool


class SearchResponse(BaseModel):
    results: list[ScoredResult]
    best_match: ScoredResult | None = None
    total_count: int
    weather: WeatherContext | None = None


class SemanticSearchResponse(BaseModel):
    results: list[ScoredResult]
    best_match: ScoredResult | None = None
    total_count: int


class ParsedQuery(BaseModel):
    intent: str = ""
    filters: FilterSet = Field(default_factory=FilterSet)
    clarifying_questions: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("clarifying_questions")
    @classmethod
    def _at_most_two(cls, questions: list[str]) -> list[str]:
        return [q for q in questions if q.strip()][:2]


class HybridSearchResponse(BaseModel):
    results: list[ScoredResult]
    best_match: ScoredResult | None = None
    total_count: int
    latency_ms: float
    parsed: ParsedQuery | None = None
    degraded: list[str] = Field(default_factory=list)


class VenueDetail(BaseModel):
    venue: Venue
    open_state: OpenState


# ── Requests ─────────────────────────────────────────────────────────────


class SearchRequest(BaseModel):
    filters: FilterSet = Field(default_factory=FilterSet)
    location: Location | None = None
    user_id: str | None = None
    at: datetime | None = Field(
        default=None, description="Evaluation time; defaults to now in the city's offset"
    )


class SemanticSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=1000)
    filters: FilterSet | None = None
    location: Location | None = None
    limit: int = Field(default=50, ge=1, le=100)
    at: datetime | None = None


class HybridSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=1000)
    location: Location | None = None
    user_id: str | None = None
    at: datetime | None = None


class ConversationTurn(BaseModel):
    role: str
    content: str


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=1000)
    conversation_history: list[ConversationTurn] = Field(default_factory=list)
    location: Location | None = None
    user_id: str | None = None
    at: datetime | None = None


class QueryResponseType(str, Enum):
    results = "results"
    clarification = "clarification"


class QueryResponse(BaseModel):
    type: QueryResponseType
    message: str
    parsed: ParsedQuery
    results: HybridSearchResponse | None = None
