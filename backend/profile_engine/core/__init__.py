"""Learning Profile Engine - Core configuration, database and error types."""
