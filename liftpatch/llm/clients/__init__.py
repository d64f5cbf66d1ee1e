"""LLM client implementations.

Contains wrappers for different LLM providers (OpenAI).
"""
