"""Account enrichment pipeline."""
