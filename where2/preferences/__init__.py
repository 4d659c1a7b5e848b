"""
Learned user preferences.

Responsibilities:
- Keep per-user tag counts, favourite areas and price level.
- Record venue selections and the search that led to them.
- Hand the ranking core a read-only preference snapshot.
"""
