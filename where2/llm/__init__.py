"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Turn free-text venue queries into structured search filters.
- Write a short conversational reply about search results.
"""
