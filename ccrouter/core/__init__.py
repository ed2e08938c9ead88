"""Core infrastructure: logging and error types."""
