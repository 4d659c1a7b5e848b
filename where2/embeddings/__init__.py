"""
Embeddings layer for semantic search.

Responsibilities:
- Load a lightweight sentence-transformer model.
- Precompute embeddings for all venues (offline).
- Encode free-text search queries at request time.
"""
