"""
LLM integration for program-builder turns.

Provides the adapter that sends the current snapshot, catalog and
conversation to a text-generation service and parses its reply.
"""

from liftpatch.llm.adapter import LLMAdapter

__all__ = ["LLMAdapter"]
