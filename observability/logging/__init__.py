"""JSON structured logging."""
