"""Domain layer - task contracts, execution context, and errors."""
