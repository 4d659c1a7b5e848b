from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

_PROCESSED_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"


@dataclass(frozen=True)
class EmbeddingConfig:
    model_name: str = "all-MiniLM-L6-v2"
    dimension: int = 384
    batch_size: int = 64
    venues_path: Path = _PROCESSED_DIR / "venues.csv"
    embeddings_path: Path = _PROCESSED_DIR / "embeddings.npy"


DEFAULT_EMBEDDING_CONFIG = EmbeddingConfig()
