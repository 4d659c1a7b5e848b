"""
Venue search and ranking engine.

Responsibilities:
- Evaluate opening hours and distances for candidate venues.
- Filter venues by explicit attributes and score them with reasons.
- Score venues by semantic similarity to a free-text query.
- Merge both rankings into one hybrid list with a best-match pick.
"""
