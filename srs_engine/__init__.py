"""Spaced-repetition review engine: scheduling, session queues and statistics."""
