from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .hours import is_open_at
from .models import FilterSet, OpenState, QueryContext, Venue


def _lower_set(values: Iterable[str]) -> set[str]:
    return {v.strip().lower() for v in values if v and v.strip()}


def matches_any(requested: Iterable[str], available: Iterable[str]) -> bool:
    """OR semantics: true when the two label sets share at least one value, ignoring case."""
    return bool(_lower_set(requested) & _lower_set(available))


def matches_tags(venue: Venue, filters: FilterSet) -> bool:
    return not filters.tags or matches_any(filters.tags, venue.tags)


def matches_cuisine(venue: Venue, filters: FilterSet) -> bool:
    return not filters.cuisine or matches_any(filters.cuisine, venue.cuisine)


def matches_rating(venue: Venue, filters: FilterSet) -> bool:
    return filters.min_rating is None or venue.rating >= filters.min_rating


def matches_open_now(venue: Venue, filters: FilterSet, now: datetime) -> bool:
    # Unknown hours are excluded: only confirmed-open venues pass
    return not filters.open_now or is_open_at(venue.opening_hours, now) is OpenState.open


def matches_filters(venue: Venue, filters: FilterSet, now: datetime) -> bool:
    if filters.category and venue.category.lower() != filters.category.strip().lower():
        return False
    if filters.price_level is not None and venue.price_level != filters.price_level:
        return False
    if filters.area and venue.area.strip().lower() != filters.area.strip().lower():
        return False
    if filters.near_transit is True and not venue.near_transit:
        return False
    if filters.noise is not None and venue.noise != filters.noise:
        return False
    return (
        matches_tags(venue, filters)
        and matches_cuisine(venue, filters)
        and matches_rating(venue, filters)
        and matches_open_now(venue, filters, now)
    )


def filter_venues(venues: Iterable[Venue], context: QueryContext) -> list[Venue]:
    """Return the venues satisfying every constraint present in ``context.filters``."""
    return [v for v in venues if matches_filters(v, context.filters, context.now)]
