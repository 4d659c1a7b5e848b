from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics.pairwise import cosine_similarity

from ..embeddings.config import DEFAULT_EMBEDDING_CONFIG
from .models import FilterSet, PriceLevel, Venue, Weekday, WeeklySchedule

logger = logging.getLogger(__name__)

_VENUES_CSV = DEFAULT_EMBEDDING_CONFIG.venues_path
_EMBEDDINGS_NPY = DEFAULT_EMBEDDING_CONFIG.embeddings_path

HOURS_COLUMNS = {day: f"hours_{day.name}" for day in Weekday}

_df: pd.DataFrame | None = None
_embeddings: np.ndarray | None = None
_venues: list[Venue] | None = None


def _split_labels(value: Any) -> list[str]:
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _optional(value: Any) -> Any:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return value


def _load() -> pd.DataFrame:
    df = pd.read_csv(_VENUES_CSV, dtype={"id": str})

    df["tags_list"] = df["tags"].apply(_split_labels)
    df["cuisine_list"] = df["cuisine"].apply(_split_labels)

    # Lowercase exact-match columns for case-insensitive pre-filtering
    df["category_lower"] = df["category"].fillna("").str.strip().str.lower()
    df["area_lower"] = df["area"].fillna("").str.strip().str.lower()
    df["near_transit"] = df["near_transit"].fillna(False).astype(bool)

    return df


def get_dataframe() -> pd.DataFrame:
    """Return the in-memory venue DataFrame, loading it on first call."""
    global _df
    if _df is None:
        _df = _load()
    return _df


def get_embeddings() -> np.ndarray | None:
    """Return precomputed venue embeddings, or None if file missing."""
    global _embeddings
    if _embeddings is None and _EMBEDDINGS_NPY.exists():
        _embeddings = np.load(_EMBEDDINGS_NPY)
    return _embeddings


def _schedule(row: pd.Series) -> WeeklySchedule | None:
    entries = {day.name: _optional(row.get(col)) for day, col in HOURS_COLUMNS.items()}
    if all(v is None or not str(v).strip() for v in entries.values()):
        return None
    return WeeklySchedule.from_mapping(
        {day: (str(v) if v is not None else "Closed") for day, v in entries.items()}
    )


def _embedding_for(position: int, embeddings: np.ndarray | None) -> list[float] | None:
    if embeddings is None or position >= len(embeddings):
        return None
    vector = embeddings[position]
    if not np.all(np.isfinite(vector)) or not np.any(vector):
        return None
    return vector.astype(float).tolist()


def _row_to_venue(row: pd.Series, embedding: list[float] | None) -> Venue:
    walk = _optional(row.get("transit_walk_min"))
    return Venue(
        id=str(row["id"]),
        name=row["name"],
        category=row["category"],
        area=row["area"],
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        tags=row["tags_list"],
        cuisine=row["cuisine_list"],
        price_level=row["price_level"],
        noise=_optional(row.get("noise")),
        rating=float(row["rating"]),
        near_transit=bool(row["near_transit"]),
        transit_station=_optional(row.get("transit_station")),
        transit_walk_min=int(walk) if walk is not None else None,
        opening_hours=_schedule(row),
        highlights=_optional(row.get("highlights")) or "",
        embedding=embedding,
    )


def _all_venues() -> list[Venue]:
    global _venues
    if _venues is None:
        df = get_dataframe()
        embeddings = get_embeddings()
        if embeddings is not None and len(embeddings) != len(df):
            logger.warning(
                "Embeddings file has %d rows but %d venues; re-run precompute",
                len(embeddings),
                len(df),
            )
        _venues = [
            _row_to_venue(row, _embedding_for(pos, embeddings))
            for pos, (_, row) in enumerate(df.iterrows())
        ]
        logger.info(
            "Loaded %d venues (%d with embeddings)",
            len(_venues),
            sum(1 for v in _venues if v.embedding),
        )
    return _venues


def get_venues(
    category: str | None = None,
    area: str | None = None,
    price_level: PriceLevel | str | None = None,
    near_transit: bool | None = None,
) -> list[Venue]:
    """
    Return the venue collection, optionally pre-filtered on exact-match fields.

    Pre-filtering is an optimisation only; the ranking core applies the same
    predicates itself and stays correct on the unfiltered set.
    """
    df = get_dataframe()
    venues = _all_venues()

    mask = pd.Series(True, index=df.index)
    if category:
        mask = mask & (df["category_lower"] == category.strip().lower())
    if area:
        mask = mask & (df["area_lower"] == area.strip().lower())
    if price_level:
        mask = mask & (df["price_level"] == PriceLevel(price_level).value)
    if near_transit is True:
        mask = mask & df["near_transit"]

    return [venues[pos] for pos, keep in enumerate(mask.tolist()) if keep]


def get_venue(venue_id: str) -> Venue | None:
    for venue in _all_venues():
        if venue.id == venue_id:
            return venue
    return None


def get_metadata() -> dict[str, list[str]]:
    df = get_dataframe()
    cuisines: set[str] = set()
    for labels in df["cuisine_list"]:
        cuisines.update(labels)
    return {
        "areas": sorted(df["area"].dropna().unique().tolist()),
        "categories": sorted(df["category"].dropna().unique().tolist()),
        "cuisines": sorted(cuisines),
    }


def _index_filter_kwargs(filters: FilterSet | None) -> dict[str, Any]:
    if filters is None:
        return {}
    return {
        "category": filters.category,
        "area": filters.area,
        "price_level": filters.price_level,
        "near_transit": filters.near_transit,
    }


def _passes_index_filter(venue: Venue, filters: FilterSet | None) -> bool:
    if filters is None:
        return True
    if filters.category and venue.category.lower() != filters.category.strip().lower():
        return False
    if filters.area and venue.area.strip().lower() != filters.area.strip().lower():
        return False
    if filters.price_level is not None and venue.price_level != filters.price_level:
        return False
    return not (filters.near_transit is True and not venue.near_transit)


def similarity_search(
    query_embedding: Sequence[float] | np.ndarray,
    attribute_filter: FilterSet | None = None,
    limit: int = 50,
    venues: Iterable[Venue] | None = None,
) -> list[tuple[Venue, float]]:
    """
    Rank embedded venues by cosine similarity to ``query_embedding``.

    Only the index-filterable fields of ``attribute_filter`` (category, area,
    price level, near transit) apply here; everything else is a post-filter.
    Venues without an embedding never appear.
    """
    if venues is None:
        pool = get_venues(**_index_filter_kwargs(attribute_filter))
    else:
        pool = [v for v in venues if _passes_index_filter(v, attribute_filter)]

    query_vec = np.asarray(query_embedding, dtype=float).reshape(1, -1)
    dim = query_vec.shape[1]
    pool = [v for v in pool if v.embedding and len(v.embedding) == dim]
    if not pool:
        return []

    matrix = np.asarray([v.embedding for v in pool], dtype=float)
    sims = cosine_similarity(query_vec, matrix).flatten()
    order = np.argsort(-sims, kind="stable")[:limit]
    return [(pool[i], float(sims[i])) for i in order]
