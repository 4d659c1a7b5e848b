from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class SearchConfig:
    result_limit: int = 10
    best_match_gap: float = 15.0
    semantic_limit: int = 50
    hybrid_semantic_limit: int = 20
    confidence_threshold: float = 0.7
    # Dubai does not observe daylight saving
    utc_offset_hours: float = 4.0
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 50

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(hours=self.utc_offset_hours))

    def now(self) -> datetime:
        """Current wall-clock time in the city's offset."""
        return datetime.now(self.tz)

    def localize(self, at: datetime | None) -> datetime:
        """Resolve a request timestamp to city time. Naive values are taken as city time."""
        if at is None:
            return self.now()
        if at.tzinfo is None:
            return at
        return at.astimezone(self.tz)


DEFAULT_SEARCH_CONFIG = SearchConfig()
