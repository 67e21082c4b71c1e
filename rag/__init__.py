"""Retrieval over the ingested compliance manual."""
