"""Content digests and cache store backends."""
