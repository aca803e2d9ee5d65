"""HTTP API for GEOspy."""
