from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from groq import Groq

from ..errors import QueryParseError
from ..search.cache import cache_get, cache_set
from ..search.models import ConversationTurn, ParsedQuery, ScoredResult
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

KNOWN_TAGS = ["family-friendly", "kid-friendly", "outdoor", "indoor", "waterfront"]

# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

SEARCH_INTENT_PROMPT = """\
You are an assistant helping users find venues in {city}. Convert their \
natural-language query into structured search filters.

Context:
- Metro stations: DMCC, Business Bay, Burj Khalifa/Dubai Mall, Mall of the Emirates, \
Emirates Towers, Al Rigga
- Popular areas: Marina, Business Bay, Downtown, JBR, City Walk, Al Barsha, \
Palm Jumeirah, DIFC, Jumeirah, Deira
- Weather: pleasant outdoors October to March, hot April to September
- Current time: {now}

Return ONLY valid JSON in this exact format (omit filter fields you cannot infer):
{{
  "intent": "brief summary of what the user wants",
  "filters": {{
    "category": "cafe | restaurant | bar | attraction | any",
    "tags": [{tags}],
    "price_level": "Low | Mid | High | Lux",
    "area": "area name",
    "near_transit": true,
    "min_rating": 4.0,
    "cuisine": ["Italian"],
    "noise": "Quiet | Moderate | Lively",
    "open_now": false
  }},
  "clarifying_questions": ["at most two questions"],
  "confidence": 0.8
}}

Consider time of day, party composition (family implies family-friendly and \
possibly kid-friendly), budget, location and atmosphere. Set open_now to true \
only for time-sensitive queries ("now", "tonight").

Confidence scoring rules:
- 0.9-1.0: very clear query with all necessary info
- 0.7-0.8: most info present, minor clarification helpful
- 0.5-0.6: significant ambiguity
- below 0.5: very unclear, ask clarifying questions"""

RESPONSE_PROMPT = (
    "You are a friendly, helpful assistant for Where2 {city}. "
    "Be concise, warm, and actionable. Reply in 2-3 sentences."
)


def _build_messages(
    query: str,
    history: list[ConversationTurn],
    config: LLMConfig,
    now: datetime | None,
) -> list[dict[str, str]]:
    system = SEARCH_INTENT_PROMPT.format(
        city=config.city,
        now=now.strftime("%A %Y-%m-%d %H:%M") if now else "unknown",
        tags=", ".join(f'"{t}"' for t in KNOWN_TAGS),
    )
    messages = [{"role": "system", "content": system}]
    messages.extend({"role": t.role, "content": t.content} for t in history)
    messages.append({"role": "user", "content": query})
    return messages


def _normalise(parsed: dict[str, Any]) -> dict[str, Any]:
    filters = {k: v for k, v in (parsed.get("filters") or {}).items() if v is not None}
    if str(filters.get("category", "")).lower() == "any":
        filters.pop("category")
    parsed["filters"] = filters
    return parsed


def parse_search_query(
    query: str,
    conversation_history: list[ConversationTurn] | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
    now: datetime | None = None,
) -> ParsedQuery:
    """
    Ask the LLM for structured filters and a confidence for ``query``.

    Raises ``QueryParseError`` when the parser is unavailable or returns
    something unusable, so callers can choose their own fallback.
    """
    if not config.enabled or not config.api_key:
        raise QueryParseError("Query parser is not configured")

    history = conversation_history or []
    cache_key = {
        "kind": "parse",
        "query": query.strip().lower(),
        "history": [t.model_dump() for t in history],
        # The prompt includes the current time to the minute
        "minute": now.strftime("%Y-%m-%d %H:%M") if now else None,
    }
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=_build_messages(query, history, config, now),
            max_tokens=config.parse_max_tokens,
            temperature=config.parse_temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        parsed = ParsedQuery.model_validate(_normalise(json.loads(content)))
    except Exception as exc:
        raise QueryParseError(f"Query parsing failed: {exc}") from exc

    cache_set(cache_key, parsed)
    return parsed


# ---------------------------------------------------------------------------
# Conversational reply
# ---------------------------------------------------------------------------


def _fallback_response(count: int) -> str:
    if count:
        return f"Found {count} great options for you!"
    return "No exact matches found. Try adjusting your filters."


def generate_search_response(
    query: str,
    count: int,
    best_match: ScoredResult | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> str:
    """Short friendly reply about a result set. Falls back to a template on any failure."""
    if not config.enabled or not config.api_key:
        return _fallback_response(count)

    if count:
        best = (
            f'The best match is "{best_match.venue.name}" because: {best_match.reason_text}'
            if best_match
            else ""
        )
        prompt = (
            f'The user searched for: "{query}"\n\nWe found {count} venues. {best}\n\n'
            "Acknowledge the request, highlight the best match or top results, "
            "and invite them to explore or refine."
        )
    else:
        prompt = (
            f'The user searched for: "{query}"\n\nWe found no exact matches. '
            "Acknowledge the search, suggest ways to broaden it (relax filters, "
            "try a different area) and stay positive."
        )

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=config.model,
            messages=[
                {"role": "system", "content": RESPONSE_PROMPT.format(city=config.city)},
                {"role": "user", "content": prompt},
            ],
            max_tokens=config.reply_max_tokens,
            temperature=config.reply_temperature,
        )
        reply = (response.choices[0].message.content or "").strip()
        return reply or _fallback_response(count)

    except Exception:
        logger.warning("Search reply generation failed, using template", exc_info=True)
        return _fallback_response(count)
