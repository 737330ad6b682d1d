"""Learning Profile Engine - Pydantic schemas."""
