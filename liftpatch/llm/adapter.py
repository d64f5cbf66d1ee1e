"""LLM Adapter for program-builder turns.

This module provides the LLM adapter that orchestrates:
1. Building the program-builder prompt
2. Calling the vendor-specific LLM client
3. Parsing the response into a ProgramReply

Architecture:
- adapter.py (this file): Vendor-agnostic orchestration
- clients/: Vendor-specific API wrappers (OpenAI)
- prompts/: Domain prompt engineering (program_builder.py)

Layer 2 of LLM architecture: Orchestrates between vendor clients and domain prompts.
"""

import logging
import re
from typing import Any, Iterable, Literal, Optional

from liftpatch.core.errors import UpstreamFormatError
from liftpatch.core.schema.program import Program
from liftpatch.core.schema.reply import ProgramReply, parse_reply_text
from liftpatch.llm.prompts.program_builder import build_messages

logger = logging.getLogger(__name__)

ClientType = Literal["openai"]

JSON_MODE_MARKERS = ("turbo", "gpt-4o", "gpt-4.1", "gpt-5", "gpt-3.5-turbo", "o1", "o3", "o4")


class LLMAdapter:
    """LLM adapter turning a coach instruction into a ProgramReply.

    The adapter makes exactly one model call per turn. A reply that fails to
    parse is reported as an UpstreamFormatError; the adapter never asks the
    model again with a corrected prompt.

    Example:
        >>> adapter = LLMAdapter(api_key="sk-...")
        >>> reply = adapter.propose_reply(program, catalog, history, "Make bench first")
        >>> reply.type
        'program'
    """

    def __init__(self, client_type: ClientType = "openai", client: Any = None, **client_config):
        """Initialize LLM adapter with specified client.

        Args:
            client_type: Which LLM vendor to use ("openai")
            client: Pre-built client exposing ``chat(messages, ...)`` (skips the factory)
            **client_config: Configuration for the client (api_key, model, timeout, ...)
                             Missing values are loaded from config.json by the client

        Example:
            >>> adapter = LLMAdapter("openai", model="gpt-4o-mini")
            >>> adapter = LLMAdapter()  # Auto-loads from config.json
        """
        self.client_type = client_type
        self.client_config = client_config
        self.client = client if client is not None else self._create_client(client_type, client_config)

        logger.info(f"Initialized LLMAdapter with {client_type} client")

    def _create_client(self, client_type: str, config: dict):
        """Factory for creating vendor-specific clients.

        Raises:
            ValueError: If client_type is unknown
        """
        if client_type == "openai":
            from liftpatch.llm.clients.openai import OpenAIClient

            return OpenAIClient(**config)
        raise ValueError(f"Unknown client type: {client_type}")

    @property
    def model(self) -> str:
        return getattr(self.client, "model", None) or self.client_config.get("model", "")

    def supports_json_mode(self) -> bool:
        model_name = (self.model or "").lower()
        return any(marker in model_name for marker in JSON_MODE_MARKERS)

    def propose_reply(
        self,
        program: Optional[Program],
        catalog: Iterable[str],
        history: Iterable[Any],
        instruction: str,
        summary: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProgramReply:
        """Ask the model for a question or a program edit.

        Args:
            program: Current snapshot
            catalog: Allowed exercise names
            history: Prior turns, oldest first
            instruction: The coach's new message
            summary: Optional conversation summary
            timeout: Optional per-request deadline in seconds

        Returns:
            ProgramReply with raw (unvalidated) operations

        Raises:
            UpstreamFormatError: If the reply is not valid JSON or has an
                unrecognized shape
            Exception: If the LLM call itself fails
        """
        messages = build_messages(program, catalog, history, instruction, summary)
        logger.debug(f"Built {len(messages)} messages for model {self.model}")

        json_mode = self.supports_json_mode()
        if not json_mode:
            messages[0]["content"] += (
                "\n\nIMPORTANT: Return ONLY valid JSON (no markdown, no code blocks, no explanations)."
            )

        chat_kwargs = {"messages": messages}
        if json_mode:
            chat_kwargs["response_format"] = {"type": "json_object"}
        if timeout is not None:
            chat_kwargs["timeout"] = timeout

        try:
            response = self.client.chat(**chat_kwargs)
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            raise
        logger.debug("Received LLM response")

        if not json_mode:
            response = extract_json_object(response)

        try:
            reply = parse_reply_text(response)
        except UpstreamFormatError as e:
            logger.error(f"Failed to parse LLM response: {e}")
            logger.debug(f"Response was: {str(response)[:500]}...")
            raise

        if reply.is_question:
            logger.info("Model asked a clarifying question")
        else:
            logger.info(f"Model proposed {len(reply.operations)} operations")
        return reply


def extract_json_object(text: str) -> str:
    """Pull the outermost JSON object out of free text (e.g. a fenced code block).

    Returns the text unchanged when no braces are found, so the parser
    reports the failure.
    """
    if not isinstance(text, str):
        return text
    match = re.search(r"\{[\s\S]*\}", text)
    if match:
        logger.debug("Extracted JSON from response")
        return match.group(0)
    return text
