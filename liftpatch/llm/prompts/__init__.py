"""Domain prompt builders for the LLM adapter."""
