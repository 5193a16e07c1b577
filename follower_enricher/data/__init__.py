"""Record store, input merging and checkpoint output."""
