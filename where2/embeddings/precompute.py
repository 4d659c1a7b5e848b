"""
Offline script to precompute venue embeddings.

Rows are written in the same order as ``venues.csv`` so the store can
attach them by position.

Usage:
    python -m where2.embeddings.precompute
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from .config import DEFAULT_EMBEDDING_CONFIG
from .encoder import encode_batch


def build_text(row: pd.Series) -> str:
    """Describe a venue the way a searcher would: name, pitch, tags, food, area, mood."""
    parts: list[str] = []
    for field in ("name", "highlights"):
        if pd.notna(row.get(field)) and str(row[field]).strip():
            parts.append(str(row[field]).strip())
    if pd.notna(row.get("tags")):
        parts.append(f"Tags: {row['tags']}")
    if pd.notna(row.get("cuisine")):
        parts.append(f"Cuisine: {row['cuisine']}")
    if pd.notna(row.get("area")):
        parts.append(f"Area: {row['area']}")
    if pd.notna(row.get("noise")):
        parts.append(f"Atmosphere: {row['noise']}")
    return ". ".join(parts)


def run_precompute() -> None:
    df = pd.read_csv(DEFAULT_EMBEDDING_CONFIG.venues_path, dtype={"id": str})
    texts = df.apply(build_text, axis=1).tolist()

    print(f"Encoding {len(texts)} venues ...")
    embeddings = encode_batch(texts)

    out_path = DEFAULT_EMBEDDING_CONFIG.embeddings_path
    np.save(out_path, embeddings)
    print(f"Saved embeddings ({embeddings.shape}) to {out_path}")


if __name__ == "__main__":
    run_precompute()
