"""HTTP API for quotes and cache administration."""
