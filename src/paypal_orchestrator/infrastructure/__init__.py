"""Persistence and process-local infrastructure."""
