from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .errors import UpstreamError
from .llm.config import DEFAULT_LLM_CONFIG
from .llm.query_parser import generate_search_response, parse_search_query
from .preferences.models import (
    PreferencesUpdate,
    SelectionRequest,
    UserPreferences,
    VibeSummary,
)
from .preferences.store import (
    clear_preferences,
    get_preferences,
    get_vibe_summary,
    record_selection,
    update_preferences,
)
from .search.cache import get_cache_stats
from .search.config import DEFAULT_SEARCH_CONFIG
from .search.data_store import get_metadata, get_venue
from .search.hours import is_open_at
from .search.models import (
    HybridSearchRequest,
    HybridSearchResponse,
    QueryRequest,
    QueryResponse,
    QueryResponseType,
    SearchRequest,
    SearchResponse,
    SemanticSearchRequest,
    SemanticSearchResponse,
    VenueDetail,
)
from .search.retrieval import hybrid_search, search_venues
from .search.semantic import semantic_search

app = FastAPI(title="Where2 Venue Search API", version="1.0.0")

_config = DEFAULT_SEARCH_CONFIG
_llm_config = DEFAULT_LLM_CONFIG

_CLARIFY_FALLBACK = "Could you tell me a bit more about what you're looking for?"


@app.exception_handler(UpstreamError)
async def upstream_unavailable(request: Request, exc: UpstreamError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": f"{exc.collaborator} unavailable"})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata() -> dict:
    return get_metadata()


@app.get("/venues/{venue_id}", response_model=VenueDetail)
def venue_detail(venue_id: str) -> VenueDetail:
    venue = get_venue(venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    return VenueDetail(venue=venue, open_state=is_open_at(venue.opening_hours, _config.now()))


# ── Search endpoints ─────────────────────────────────────────────────────


@app.post("/search", response_model=SearchResponse)
def search(body: SearchRequest) -> SearchResponse:
    return search_venues(
        body.filters,
        body.location,
        body.user_id,
        now=_config.localize(body.at),
    )


@app.post("/search/semantic", response_model=SemanticSearchResponse)
def search_semantic(body: SemanticSearchRequest) -> SemanticSearchResponse:
    return semantic_search(
        body.query,
        body.filters,
        body.location,
        now=_config.localize(body.at),
        limit=body.limit,
    )


@app.post("/search/hybrid", response_model=HybridSearchResponse)
def search_hybrid(body: HybridSearchRequest) -> HybridSearchResponse:
    return hybrid_search(
        body.query,
        body.location,
        body.user_id,
        now=_config.localize(body.at),
        llm_config=_llm_config,
    )


@app.post("/query", response_model=QueryResponse)
def query(body: QueryRequest) -> QueryResponse:
    now = _config.localize(body.at)

    # 1. Parse free text into filters + confidence; a parser failure surfaces as 503
    parsed = parse_search_query(
        body.query, body.conversation_history, config=_llm_config, now=now
    )

    # 2. Clarification path: not confident enough to search
    if parsed.confidence < _config.confidence_threshold:
        return QueryResponse(
            type=QueryResponseType.clarification,
            message=" ".join(parsed.clarifying_questions) or _CLARIFY_FALLBACK,
            parsed=parsed,
        )

    # 3. Hybrid search ranks with the history-aware parse from step 1
    results = hybrid_search(
        body.query,
        body.location,
        body.user_id,
        now=now,
        parsed=parsed,
        llm_config=_llm_config,
    )
    reply = generate_search_response(
        body.query, len(results.results), results.best_match, config=_llm_config
    )

    return QueryResponse(
        type=QueryResponseType.results,
        message=reply,
        parsed=parsed,
        results=results,
    )


# ── Preference endpoints ─────────────────────────────────────────────────


@app.get("/preferences/{user_id}", response_model=UserPreferences)
def read_preferences(user_id: str) -> UserPreferences:
    return get_preferences(user_id)


@app.put("/preferences/{user_id}", response_model=UserPreferences)
def write_preferences(user_id: str, body: PreferencesUpdate) -> UserPreferences:
    return update_preferences(user_id, body.memory_enabled, body.language)


@app.delete("/preferences/{user_id}")
def delete_preferences(user_id: str) -> dict:
    clear_preferences(user_id)
    return {"status": "cleared"}


@app.post("/preferences/{user_id}/selections", response_model=UserPreferences)
def select_venue(user_id: str, body: SelectionRequest) -> UserPreferences:
    venue = get_venue(body.venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    return record_selection(user_id, venue, body.query, body.filters)


@app.get("/preferences/{user_id}/summary", response_model=VibeSummary)
def vibe_summary(user_id: str) -> VibeSummary:
    return get_vibe_summary(user_id)


@app.get("/cache/stats")
def cache_stats() -> dict:
    return get_cache_stats()
