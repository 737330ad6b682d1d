"""Learning Profile Engine - HTTP API."""
