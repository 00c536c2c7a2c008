"""Application layer - ready-made job tasks."""
