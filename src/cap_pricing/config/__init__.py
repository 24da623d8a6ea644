"""Settings and path configuration."""
