from __future__ import annotations

from pydantic import BaseModel, Field

from ..search.models import FilterSet, PriceLevel, TagCount


class UserPreferences(BaseModel):
    user_id: str
    preferred_tags: list[TagCount] = Field(default_factory=list)
    preferred_price_level: PriceLevel | None = None
    preferred_areas: list[str] = Field(default_factory=list)
    memory_enabled: bool = True
    language: str = "en"
    last_active: float = 0.0


class PreferencesUpdate(BaseModel):
    memory_enabled: bool | None = None
    language: str | None = Field(default=None, pattern="^(en|ar)$")


class SelectionRequest(BaseModel):
    venue_id: str = Field(..., min_length=1)
    query: str = ""
    filters: FilterSet = Field(default_factory=FilterSet)


class SearchHistoryEntry(BaseModel):
    user_id: str
    query: str
    filters: FilterSet
    selected_venue_id: str | None = None
    timestamp: float


class VibeSummary(BaseModel):
    summary: str
    tags: list[str]
    price_level: PriceLevel | None = None
