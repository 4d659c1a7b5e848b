"""
Attribute scoring and best-match selection.

Scores are additive from zero: rating (x20), proximity, open-now,
seasonal outdoor/indoor bias, transit access and learned preferences.
Every bonus that is worth explaining also appends a human-readable reason.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .filters import filter_venues
from .geo import distance_km
from .hours import is_open_at
from .models import (
    OpenState,
    PreferenceProfile,
    QueryContext,
    ResultSource,
    ScoredResult,
    SearchResponse,
    Venue,
    WeatherContext,
)

RATING_WEIGHT = 20.0
NEARBY_KM = 2.0
NEARBY_BONUS = 30.0
MID_RANGE_KM = 5.0
MID_RANGE_BONUS = 15.0
OPEN_NOW_BONUS = 25.0
OUTDOOR_BONUS = 20.0
INDOOR_BONUS = 15.0
TRANSIT_REQUESTED_BONUS = 20.0
TRANSIT_BONUS = 5.0
PREFERRED_TAG_MULTIPLIER = 2.0
PREFERRED_TAG_CAP = 20.0
PREFERRED_PRICE_BONUS = 10.0

OUTDOOR_MONTHS = frozenset({10, 11, 12, 1, 2, 3})


def is_outdoor_season(now: datetime) -> bool:
    """October to March is pleasant enough to favour outdoor venues."""
    return now.month in OUTDOOR_MONTHS


def weather_context(now: datetime) -> WeatherContext:
    outdoor = is_outdoor_season(now)
    return WeatherContext(temp="pleasant" if outdoor else "hot", outdoor=outdoor)


def _capitalize(tag: str) -> str:
    return tag[:1].upper() + tag[1:]


def _add_reason(reasons: list[str], reason: str) -> None:
    if reason not in reasons:
        reasons.append(reason)


def score_venue(
    venue: Venue,
    context: QueryContext,
    outdoor_season: bool,
    profile: PreferenceProfile | None = None,
) -> ScoredResult:
    """Compute the attribute score and reasons for a single filtered venue."""
    filters = context.filters
    venue_tags = {t.lower() for t in venue.tags}
    score = venue.rating * RATING_WEIGHT
    reasons: list[str] = []

    distance = 0.0
    if context.location is not None:
        distance = distance_km(
            context.location.lat, context.location.lon, venue.latitude, venue.longitude
        )
        if distance < NEARBY_KM:
            score += NEARBY_BONUS
            _add_reason(reasons, "Nearby")
        elif distance < MID_RANGE_KM:
            score += MID_RANGE_BONUS

    open_state = is_open_at(venue.opening_hours, context.now)
    if filters.open_now and open_state is OpenState.open:
        score += OPEN_NOW_BONUS
        _add_reason(reasons, "Open now")

    if outdoor_season and "outdoor" in venue_tags:
        score += OUTDOOR_BONUS
        _add_reason(reasons, "Outdoor")
    elif not outdoor_season and "indoor" in venue_tags:
        score += INDOOR_BONUS
        _add_reason(reasons, "Indoor")

    if venue.near_transit:
        if filters.near_transit:
            score += TRANSIT_REQUESTED_BONUS
            station = venue.transit_station
            _add_reason(reasons, f"Near {station} Metro" if station else "Near Metro")
        else:
            score += TRANSIT_BONUS

    if profile is not None:
        for pref in profile.tags:
            if pref.tag.lower() in venue_tags:
                score += min(pref.count * PREFERRED_TAG_MULTIPLIER, PREFERRED_TAG_CAP)
        if profile.preferred_price_level == venue.price_level:
            score += PREFERRED_PRICE_BONUS

    for tag in filters.tags:
        if tag.lower() in venue_tags:
            _add_reason(reasons, _capitalize(tag))

    _add_reason(reasons, f"{venue.price_level.value} price")

    return ScoredResult(
        venue=venue,
        source=ResultSource.attribute,
        distance_km=distance,
        open_state=open_state,
        reasons=reasons,
        attribute_score=score,
    )


def sort_by_score(results: Iterable[ScoredResult]) -> list[ScoredResult]:
    # sorted() is stable with reverse=True, so ties keep their input order
    return sorted(results, key=lambda r: r.attribute_score or 0.0, reverse=True)


def select_best_match(
    scored: list[ScoredResult],
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> ScoredResult | None:
    """
    Pick the highlighted recommendation from the full, sorted result set.

    The top result only qualifies when it beats the runner-up (or zero, when
    there is none) by more than ``config.best_match_gap`` points.
    """
    ranked = sort_by_score(scored)
    if not ranked:
        return None
    top = ranked[0].attribute_score or 0.0
    runner_up = (ranked[1].attribute_score or 0.0) if len(ranked) > 1 else 0.0
    return ranked[0] if top > runner_up + config.best_match_gap else None


def search(
    context: QueryContext,
    venues: Iterable[Venue],
    profile: PreferenceProfile | None = None,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> SearchResponse:
    """Filter, score and rank ``venues`` for one query. Pure given ``context.now``."""
    outdoor = is_outdoor_season(context.now)
    candidates = filter_venues(venues, context)
    ranked = sort_by_score(score_venue(v, context, outdoor, profile) for v in candidates)

    # Gap check runs on the full ranked set, before truncation
    best_match = select_best_match(ranked, config)

    return SearchResponse(
        results=ranked[: config.result_limit],
        best_match=best_match,
        total_count=len(ranked),
        weather=weather_context(context.now),
    )
