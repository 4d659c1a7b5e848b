"""Where2: venue discovery with explainable attribute, semantic and hybrid ranking."""
