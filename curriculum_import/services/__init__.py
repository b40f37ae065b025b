"""Ingestion, query, progress and summary services."""
