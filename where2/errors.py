from __future__ import annotations


class UpstreamError(Exception):
    """An external collaborator (LLM, embedding model, store) failed."""

    collaborator = "upstream"


class QueryParseError(UpstreamError):
    collaborator = "parser"


class EmbeddingError(UpstreamError):
    collaborator = "embedding"
