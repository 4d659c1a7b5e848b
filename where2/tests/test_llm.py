import json
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from where2.errors import QueryParseError
from where2.llm.config import LLMConfig
from where2.llm.query_parser import generate_search_response, parse_search_query
from where2.search.models import ConversationTurn, PriceLevel, ResultSource, ScoredResult, Venue

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
NO_KEY_CONFIG = LLMConfig(api_key="", enabled=True)

NOW = datetime(2025, 1, 15, 19, 30)


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _best_match() -> ScoredResult:
    venue = Venue(
        id="v001",
        name="Marina Sunset Cafe",
        category="cafe",
        area="Marina",
        latitude=25.08,
        longitude=55.14,
        price_level="Mid",
        rating=4.5,
    )
    return ScoredResult(venue=venue, source=ResultSource.attribute, reasons=["Outdoor", "Mid price"])


@patch("where2.llm.query_parser.Groq")
def test_parse_search_query_returns_filters(mock_groq_cls):
    llm_response = json.dumps({
        "intent": "Family-friendly outdoor brunch in Marina",
        "filters": {
            "category": "cafe",
            "tags": ["family-friendly", "outdoor"],
            "price_level": "Mid",
            "area": "Marina",
            "near_transit": None,
        },
        "clarifying_questions": [],
        "confidence": 0.9,
    })
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(llm_response)

    parsed = parse_search_query("brunch with the kids in Marina", config=ENABLED_CONFIG, now=NOW)

    assert parsed.confidence == pytest.approx(0.9)
    assert parsed.filters.category == "cafe"
    assert parsed.filters.tags == ["family-friendly", "outdoor"]
    assert parsed.filters.price_level is PriceLevel.mid
    assert parsed.filters.near_transit is None


@patch("where2.llm.query_parser.Groq")
def test_parse_search_query_sends_history_and_time(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"intent": "x", "filters": {}, "confidence": 0.8})
    )
    history = [ConversationTurn(role="user", content="somewhere quiet")]

    parse_search_query("in Downtown", history, config=ENABLED_CONFIG, now=NOW)

    kwargs = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs
    messages = kwargs["messages"]
    assert messages[0]["role"] == "system"
    assert "Wednesday 2025-01-15 19:30" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "somewhere quiet"}
    assert messages[-1] == {"role": "user", "content": "in Downtown"}
    assert kwargs["response_format"] == {"type": "json_object"}


@patch("where2.llm.query_parser.Groq")
def test_any_category_means_no_filter(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"filters": {"category": "any"}, "confidence": 0.75})
    )

    parsed = parse_search_query("somewhere fun", config=ENABLED_CONFIG)

    assert parsed.filters.category is None


@patch("where2.llm.query_parser.Groq")
def test_clarifying_questions_capped_at_two(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({
            "filters": {},
            "clarifying_questions": ["Which area?", "", "What budget?", "Indoor or outdoor?"],
            "confidence": 0.4,
        })
    )

    parsed = parse_search_query("something nice", config=ENABLED_CONFIG)

    assert parsed.clarifying_questions == ["Which area?", "What budget?"]


@patch("where2.llm.query_parser.Groq")
def test_parse_results_are_cached(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"filters": {"area": "JBR"}, "confidence": 0.8})
    )

    first = parse_search_query("Beach bars in JBR", config=ENABLED_CONFIG)
    second = parse_search_query("beach bars in jbr", config=ENABLED_CONFIG)

    assert first.filters.area == second.filters.area == "JBR"
    assert mock_groq_cls.return_value.chat.completions.create.call_count == 1


@patch("where2.llm.query_parser.Groq")
def test_parse_cache_is_scoped_to_the_minute(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"filters": {"open_now": True}, "confidence": 0.9})
    )

    parse_search_query("open now", config=ENABLED_CONFIG, now=datetime(2025, 1, 15, 22, 58, 5))
    parse_search_query("open now", config=ENABLED_CONFIG, now=datetime(2025, 1, 15, 22, 58, 50))
    assert mock_groq_cls.return_value.chat.completions.create.call_count == 1

    parse_search_query("open now", config=ENABLED_CONFIG, now=datetime(2025, 1, 15, 23, 2))
    assert mock_groq_cls.return_value.chat.completions.create.call_count == 2


@patch("where2.llm.query_parser.Groq")
def test_parse_raises_on_api_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    with pytest.raises(QueryParseError):
        parse_search_query("coffee", config=ENABLED_CONFIG)


@patch("where2.llm.query_parser.Groq")
def test_parse_raises_on_bad_json(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("not valid json{{{")

    with pytest.raises(QueryParseError):
        parse_search_query("coffee", config=ENABLED_CONFIG)


@patch("where2.llm.query_parser.Groq")
def test_parse_raises_on_out_of_range_confidence(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"filters": {}, "confidence": 7})
    )

    with pytest.raises(QueryParseError):
        parse_search_query("coffee", config=ENABLED_CONFIG)


@patch("where2.llm.query_parser.Groq")
def test_parse_disabled_or_unconfigured(mock_groq_cls):
    with pytest.raises(QueryParseError):
        parse_search_query("coffee", config=DISABLED_CONFIG)
    with pytest.raises(QueryParseError):
        parse_search_query("coffee", config=NO_KEY_CONFIG)
    mock_groq_cls.assert_not_called()


@patch("where2.llm.query_parser.Groq")
def test_generate_search_response(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        "  Marina Sunset Cafe is a lovely pick for brunch!  "
    )

    reply = generate_search_response("brunch", 3, _best_match(), config=ENABLED_CONFIG)

    assert reply == "Marina Sunset Cafe is a lovely pick for brunch!"
    prompt = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs["messages"][1]["content"]
    assert "Outdoor • Mid price" in prompt


@patch("where2.llm.query_parser.Groq")
def test_generate_search_response_fallback_on_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    assert generate_search_response("brunch", 4, config=ENABLED_CONFIG) == "Found 4 great options for you!"
    assert generate_search_response("brunch", 0, config=ENABLED_CONFIG) == (
        "No exact matches found. Try adjusting your filters."
    )


def test_generate_search_response_disabled():
    assert generate_search_response("brunch", 2, config=DISABLED_CONFIG) == "Found 2 great options for you!"
