"""LLM-backed generators: planning reports and content gaps."""
