from __future__ import annotations

import time

from ..search.models import (
    REASON_SEPARATOR,
    FilterSet,
    PreferenceProfile,
    TagCount,
    Venue,
)
from .models import SearchHistoryEntry, UserPreferences, VibeSummary

_preferences: dict[str, UserPreferences] = {}
_history: list[SearchHistoryEntry] = []

_SUMMARY_TAGS = 5


def get_preferences(user_id: str) -> UserPreferences:
    """Return stored preferences, or defaults for a user we have not seen."""
    prefs = _preferences.get(user_id)
    if prefs is None:
        return UserPreferences(user_id=user_id, last_active=time.time())
    return prefs.model_copy(deep=True)


def update_preferences(
    user_id: str,
    memory_enabled: bool | None = None,
    language: str | None = None,
) -> UserPreferences:
    prefs = _preferences.get(user_id) or UserPreferences(user_id=user_id)
    if memory_enabled is not None:
        prefs.memory_enabled = memory_enabled
    if language:
        prefs.language = language
    prefs.last_active = time.time()
    _preferences[user_id] = prefs
    return prefs.model_copy(deep=True)


def clear_preferences(user_id: str) -> None:
    prefs = _preferences.get(user_id)
    if prefs is None:
        return
    prefs.preferred_tags = []
    prefs.preferred_areas = []
    prefs.preferred_price_level = None
    prefs.last_active = time.time()


def record_selection(
    user_id: str,
    venue: Venue,
    query: str,
    filters: FilterSet,
) -> UserPreferences:
    """Log the selection and, when memory is on, learn from the chosen venue."""
    now = time.time()
    _history.append(SearchHistoryEntry(
        user_id=user_id,
        query=query,
        filters=filters,
        selected_venue_id=venue.id,
        timestamp=now,
    ))

    prefs = _preferences.get(user_id)
    if prefs is None:
        prefs = UserPreferences(user_id=user_id)
        _preferences[user_id] = prefs

    if prefs.memory_enabled:
        counts = {t.tag: t for t in prefs.preferred_tags}
        for tag in venue.tags:
            if tag in counts:
                counts[tag].count += 1
            else:
                entry = TagCount(tag=tag, count=1)
                counts[tag] = entry
                prefs.preferred_tags.append(entry)

        if venue.area not in prefs.preferred_areas:
            prefs.preferred_areas.append(venue.area)

        # Latest pick wins
        prefs.preferred_price_level = venue.price_level

    prefs.last_active = now
    return prefs.model_copy(deep=True)


def get_search_history(user_id: str) -> list[SearchHistoryEntry]:
    return [h for h in _history if h.user_id == user_id]


def get_profile(user_id: str | None) -> PreferenceProfile | None:
    """Read-only snapshot for scoring; None when unknown or memory is off."""
    if not user_id:
        return None
    prefs = _preferences.get(user_id)
    if prefs is None or not prefs.memory_enabled:
        return None
    return PreferenceProfile(
        tags=[t.model_copy() for t in prefs.preferred_tags],
        preferred_price_level=prefs.preferred_price_level,
    )


def get_vibe_summary(user_id: str) -> VibeSummary:
    prefs = _preferences.get(user_id)
    if prefs is None or not prefs.memory_enabled or not prefs.preferred_tags:
        return VibeSummary(summary="No preferences learned yet", tags=[])

    top = sorted(prefs.preferred_tags, key=lambda t: t.count, reverse=True)[:_SUMMARY_TAGS]
    tags = [t.tag for t in top]
    parts = [t[:1].upper() + t[1:] for t in tags]
    if prefs.preferred_price_level:
        parts.append(f"{prefs.preferred_price_level.value} price")

    return VibeSummary(
        summary=REASON_SEPARATOR.join(parts),
        tags=tags,
        price_level=prefs.preferred_price_level,
    )


def clear_all() -> None:
    _preferences.clear()
    _history.clear()
