from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Iterable

from ..errors import EmbeddingError, QueryParseError
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.query_parser import parse_search_query
from ..preferences.store import get_profile
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .data_store import get_venues
from .hybrid import merge_hybrid
from .models import (
    FilterSet,
    HybridSearchResponse,
    Location,
    ParsedQuery,
    QueryContext,
    SearchResponse,
    Venue,
)
from .scoring import search
from .semantic import semantic_search

logger = logging.getLogger(__name__)


def _candidates(filters: FilterSet, venues: Iterable[Venue] | None) -> Iterable[Venue]:
    if venues is not None:
        return venues
    return get_venues(
        category=filters.category,
        area=filters.area,
        price_level=filters.price_level,
        near_transit=filters.near_transit,
    )


def search_venues(
    filters: FilterSet,
    location: Location | None = None,
    requester_id: str | None = None,
    *,
    now: datetime,
    venues: Iterable[Venue] | None = None,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> SearchResponse:
    """Attribute-only search over the candidate store with the requester's learned profile."""
    context = QueryContext(
        filters=filters, location=location, requester_id=requester_id, now=now
    )
    return search(context, _candidates(filters, venues), get_profile(requester_id), config)


def hybrid_search(
    query: str,
    location: Location | None = None,
    requester_id: str | None = None,
    *,
    now: datetime,
    venues: Iterable[Venue] | None = None,
    parsed: ParsedQuery | None = None,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> HybridSearchResponse:
    """
    Parse and embed the query concurrently, then merge attribute and semantic rankings.

    Pass ``parsed`` when the caller already holds a parse (for example one made
    with conversation history); the parser is then not called again.

    A failed parser means no extracted filters; a failed embedding means no
    semantic results. Either way the search continues attribute-only and the
    failed collaborator is listed in ``degraded``.
    """
    start_time = time.perf_counter()
    venue_list = list(venues) if venues is not None else None
    degraded: list[str] = []

    with ThreadPoolExecutor(max_workers=2) as pool:
        parse_future = (
            pool.submit(parse_search_query, query, None, llm_config, now)
            if parsed is None
            else None
        )
        semantic_future = pool.submit(
            semantic_search,
            query,
            None,
            location,
            now=now,
            limit=config.hybrid_semantic_limit,
            venues=venue_list,
            config=config,
        )

        if parse_future is not None:
            try:
                parsed = parse_future.result()
            except QueryParseError as exc:
                logger.warning("Query parsing failed, searching without filters", exc_info=True)
                degraded.append(exc.collaborator)

        try:
            semantic_results = semantic_future.result().results
        except EmbeddingError as exc:
            logger.warning("Semantic search unavailable, using attribute ranking only", exc_info=True)
            semantic_results = []
            degraded.append(exc.collaborator)

    filters = parsed.filters if parsed is not None else FilterSet()
    attribute = search_venues(
        filters, location, requester_id, now=now, venues=venue_list, config=config
    )

    merged = merge_hybrid(semantic_results, attribute.results, limit=None)
    results = merged[: config.result_limit]
    elapsed_ms = round((time.perf_counter() - start_time) * 1000, 1)

    return HybridSearchResponse(
        results=results,
        best_match=results[0] if results else None,
        total_count=len(merged),
        latency_ms=elapsed_ms,
        parsed=parsed,
        degraded=degraded,
    )
