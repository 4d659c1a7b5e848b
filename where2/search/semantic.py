from __future__ import annotations

from datetime import datetime
from typing import Iterable

import numpy as np

from ..embeddings.encoder import encode_text
from ..errors import EmbeddingError
from .cache import cache_get, cache_set
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .data_store import similarity_search
from .filters import matches_cuisine, matches_open_now, matches_rating, matches_tags
from .geo import distance_km
from .hours import is_open_at
from .models import (
    FilterSet,
    Location,
    QueryContext,
    ResultSource,
    ScoredResult,
    SemanticSearchResponse,
    Venue,
)

# 60% similarity, 25% distance, 15% rating
SIMILARITY_WEIGHT = 0.6
DISTANCE_WEIGHT = 0.25
RATING_WEIGHT = 0.15
DISTANCE_SCALE_KM = 10.0
NEUTRAL_DISTANCE_SCORE = 0.5


def embed_query(query: str) -> np.ndarray:
    """Embed a search query, reusing recent embeddings of the same text."""
    key = {"kind": "query_embedding", "text": query.strip().lower()}
    cached = cache_get(key)
    if cached is not None:
        return cached
    try:
        vector = np.asarray(encode_text(query), dtype=float)
    except Exception as exc:
        raise EmbeddingError(f"Could not embed query: {exc}") from exc
    cache_set(key, vector)
    return vector


def score_semantic(venue: Venue, similarity: float, context: QueryContext) -> ScoredResult:
    """Blend cosine similarity in [-1, 1] with distance and rating into ``combined_score``."""
    distance = 0.0
    distance_score = NEUTRAL_DISTANCE_SCORE
    if context.location is not None:
        distance = distance_km(
            context.location.lat, context.location.lon, venue.latitude, venue.longitude
        )
        distance_score = 1.0 / (1.0 + distance / DISTANCE_SCALE_KM)

    rating_score = venue.rating / 5.0
    combined = (
        SIMILARITY_WEIGHT * ((similarity + 1.0) / 2.0)
        + DISTANCE_WEIGHT * distance_score
        + RATING_WEIGHT * rating_score
    )

    return ScoredResult(
        venue=venue,
        source=ResultSource.semantic,
        distance_km=distance,
        open_state=is_open_at(venue.opening_hours, context.now),
        semantic_score=similarity,
        combined_score=combined,
    )


def rank_semantic(
    matches: Iterable[tuple[Venue, float]],
    context: QueryContext,
) -> list[ScoredResult]:
    """Apply the post-filters the vector index cannot express, then sort by combined score."""
    filters = context.filters
    scored = [
        score_semantic(venue, similarity, context)
        for venue, similarity in matches
        if matches_tags(venue, filters)
        and matches_cuisine(venue, filters)
        and matches_rating(venue, filters)
        and matches_open_now(venue, filters, context.now)
    ]
    return sorted(scored, key=lambda r: r.combined_score or 0.0, reverse=True)


def semantic_search(
    query: str,
    filters: FilterSet | None = None,
    location: Location | None = None,
    *,
    now: datetime,
    limit: int | None = None,
    venues: Iterable[Venue] | None = None,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> SemanticSearchResponse:
    """
    Rank venues by meaning rather than attributes.

    Raises ``EmbeddingError`` when the query cannot be embedded; callers
    decide whether to fall back to attribute search.
    """
    context = QueryContext(filters=filters or FilterSet(), location=location, now=now)
    query_vec = embed_query(query)
    matches = similarity_search(
        query_vec, context.filters, limit or config.semantic_limit, venues=venues
    )
    ranked = rank_semantic(matches, context)
    return SemanticSearchResponse(
        results=ranked,
        best_match=ranked[0] if ranked else None,
        total_count=len(ranked),
    )
