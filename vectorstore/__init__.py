"""Vector store module for the compliance-manual retrieval pipeline.

Provides structure-aware chunking, OpenAI embedding generation,
and a Chroma-or-in-memory vector index with cosine search.
"""
