"""Infrastructure layer - configuration, database, observability, and runtime."""
