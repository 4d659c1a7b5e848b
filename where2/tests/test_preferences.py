from __future__ import annotations

from where2.preferences.store import (
    clear_preferences,
    get_preferences,
    get_profile,
    get_search_history,
    get_vibe_summary,
    record_selection,
    update_preferences,
)
from where2.search.models import FilterSet, PriceLevel


def _counts(prefs):
    return {t.tag: t.count for t in prefs.preferred_tags}


class TestRecordSelection:
    def test_learns_tags_area_and_price(self, make_venue):
        first = make_venue(id="a", tags=["outdoor", "waterfront"], area="Marina", price_level="Mid")
        second = make_venue(id="b", tags=["outdoor"], area="JBR", price_level="High")

        record_selection("u1", first, "sunset coffee", FilterSet())
        prefs = record_selection("u1", second, "beach", FilterSet(area="JBR"))

        assert _counts(prefs) == {"outdoor": 2, "waterfront": 1}
        assert prefs.preferred_areas == ["Marina", "JBR"]
        assert prefs.preferred_price_level is PriceLevel.high

    def test_history_recorded_even_without_memory(self, make_venue):
        update_preferences("u1", memory_enabled=False)
        prefs = record_selection("u1", make_venue(id="a", tags=["outdoor"]), "q", FilterSet())

        assert prefs.preferred_tags == []
        assert prefs.preferred_price_level is None
        history = get_search_history("u1")
        assert [h.selected_venue_id for h in history] == ["a"]
        assert get_search_history("someone-else") == []

    def test_returned_preferences_are_copies(self, make_venue):
        prefs = record_selection("u1", make_venue(tags=["outdoor"]), "q", FilterSet())
        prefs.preferred_tags[0].count = 99
        assert _counts(get_preferences("u1")) == {"outdoor": 1}


class TestProfile:
    def test_no_profile_for_anonymous_or_unknown(self):
        assert get_profile(None) is None
        assert get_profile("") is None
        assert get_profile("nobody") is None

    def test_profile_snapshot(self, make_venue):
        record_selection("u1", make_venue(tags=["quiet"], price_level="Low"), "q", FilterSet())
        profile = get_profile("u1")
        assert [(t.tag, t.count) for t in profile.tags] == [("quiet", 1)]
        assert profile.preferred_price_level is PriceLevel.low

    def test_memory_off_hides_profile(self, make_venue):
        record_selection("u1", make_venue(tags=["quiet"]), "q", FilterSet())
        update_preferences("u1", memory_enabled=False)
        assert get_profile("u1") is None


class TestPreferencesStore:
    def test_defaults_for_new_user(self):
        prefs = get_preferences("new")
        assert prefs.memory_enabled is True
        assert prefs.language == "en"
        assert prefs.preferred_tags == []

    def test_update_language(self):
        prefs = update_preferences("u1", language="ar")
        assert prefs.language == "ar"
        assert prefs.memory_enabled is True

    def test_clear_keeps_settings(self, make_venue):
        update_preferences("u1", language="ar")
        record_selection("u1", make_venue(tags=["outdoor"]), "q", FilterSet())
        clear_preferences("u1")

        prefs = get_preferences("u1")
        assert prefs.preferred_tags == []
        assert prefs.preferred_areas == []
        assert prefs.preferred_price_level is None
        assert prefs.language == "ar"

    def test_clear_unknown_user_is_noop(self):
        clear_preferences("ghost")
        assert get_profile("ghost") is None


class TestVibeSummary:
    def test_empty(self):
        summary = get_vibe_summary("u1")
        assert summary.summary == "No preferences learned yet"
        assert summary.tags == []

    def test_top_tags_and_price(self, make_venue):
        record_selection("u1", make_venue(tags=["outdoor", "waterfront"]), "q", FilterSet())
        record_selection("u1", make_venue(tags=["waterfront"], price_level="Low"), "q", FilterSet())

        summary = get_vibe_summary("u1")
        assert summary.tags == ["waterfront", "outdoor"]
        assert summary.summary == "Waterfront • Outdoor • Low price"
        assert summary.price_level is PriceLevel.low
