"""
Hybrid merge of semantic and attribute result sets.

Semantic results come first and win on overlap. Attribute-only results are
appended with ``combined_score = attribute_score / 100``, then every entry is
re-ranked with ``final = combined * 0.6 + attribute / 100 * 0.4``.

For attribute-only entries the attribute score therefore counts twice (once
inside ``combined_score`` and once in the 0.4 term). Whether that double
count is wanted is still open, so leave it until rankings are reviewed.
"""
from __future__ import annotations

from typing import Iterable

from .models import ResultSource, ScoredResult

SEMANTIC_WEIGHT = 0.6
ATTRIBUTE_WEIGHT = 0.4
ATTRIBUTE_SCALE = 100.0


def _final_score(result: ScoredResult) -> float:
    combined = result.combined_score or 0.0
    attribute = result.attribute_score or 0.0
    return combined * SEMANTIC_WEIGHT + attribute / ATTRIBUTE_SCALE * ATTRIBUTE_WEIGHT


def merge_hybrid(
    semantic_results: Iterable[ScoredResult],
    attribute_results: Iterable[ScoredResult],
    limit: int | None = 10,
) -> list[ScoredResult]:
    """
    Union both result sets by venue id and re-rank by ``final_score``.

    An empty semantic set is valid and yields attribute-only ranking.
    """
    attribute_list = list(attribute_results)
    attribute_by_id = {r.venue.id: r for r in attribute_list}

    merged: list[ScoredResult] = []
    seen: set[str] = set()

    for result in semantic_results:
        if result.venue.id in seen:
            continue
        seen.add(result.venue.id)
        overlap = attribute_by_id.get(result.venue.id)
        if overlap is not None:
            # Keeps the semantic scores; only the explanation is borrowed
            result = result.model_copy(
                update={"source": ResultSource.both, "reasons": list(overlap.reasons)}
            )
        merged.append(result)

    for result in attribute_list:
        if result.venue.id in seen:
            continue
        seen.add(result.venue.id)
        merged.append(
            result.model_copy(
                update={
                    "semantic_score": 0.0,
                    "combined_score": (result.attribute_score or 0.0) / ATTRIBUTE_SCALE,
                }
            )
        )

    ranked = [r.model_copy(update={"final_score": _final_score(r)}) for r in merged]
    ranked.sort(key=lambda r: r.final_score or 0.0, reverse=True)
    return ranked if limit is None else ranked[:limit]
