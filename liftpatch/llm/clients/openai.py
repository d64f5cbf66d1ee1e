"""OpenAI client - Pure API wrapper.

This module provides a clean OpenAI API client with zero domain logic.
It's vendor-specific but domain-agnostic.

Layer 1 of LLM architecture: Vendor API wrapper only.
"""

import logging
import time
from typing import Dict, List, Optional

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI, RateLimitError

from liftpatch.core.config import get_config_value, get_float, get_int

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIClient:
    """Pure OpenAI API wrapper - no domain logic.

    This class handles only OpenAI API communication. Retries resend the
    identical request after transport failures; the request itself is
    never altered.

    Configuration priority: explicit parameter > config.json > environment > default

    Example:
        >>> client = OpenAIClient(api_key="sk-...")
        >>> response = client.chat([{"role": "user", "content": "Hello"}])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (loads from config.json if None)
            model: Model to use (default: "gpt-4o-mini")
            temperature: Sampling temperature (default: 0.6)
            timeout: Request timeout in seconds (default: 30.0)
            max_retries: Transport retries per request (default: 2)
        """
        self.api_key = api_key or get_config_value(["openai", "api_key"])
        self.model = model or get_config_value(["openai", "model"], default=DEFAULT_MODEL)
        self.temperature = (
            temperature if temperature is not None else get_float(["openai", "temperature"], 0.6)
        )
        self.timeout = timeout if timeout is not None else get_float(["llm", "timeout_seconds"], 30.0)
        self.max_retries = (
            max_retries if max_retries is not None else get_int(["llm", "max_retries"], 2)
        )

        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set in config.json: "
                "{'openai': {'api_key': 'sk-...'}} or OPENAI_API_KEY"
            )

        self._client = self._create_client(self.timeout)

    def _create_client(self, timeout: float) -> OpenAI:
        # Retries are handled here, with logging, not by the SDK
        return OpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)

    def chat(
        self,
        messages: List[Dict[str, str]],
        response_format: Optional[Dict[str, str]] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """Send chat messages to OpenAI API with retry logic.

        Args:
            messages: List of message dicts with 'role' and 'content'
            response_format: Optional format spec (e.g., {"type": "json_object"})
            temperature: Override default temperature
            timeout: Override default timeout (seconds, shared by all attempts
                and the waits between them)
            max_retries: Override default retry count

        Returns:
            Response text from OpenAI

        Raises:
            ValueError: On authentication failure
            RuntimeError: When all attempts fail, the deadline passes or the
                reply is empty
        """
        retries = self.max_retries if max_retries is None else max_retries
        budget = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + budget
        client = self._client
        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if response_format is not None:
            kwargs["response_format"] = response_format

        last_exception: Optional[Exception] = None
        attempts = 0
        for attempt in range(retries + 1):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            attempts += 1
            try:
                response = client.chat.completions.create(timeout=remaining, **kwargs)
                content = response.choices[0].message.content
                if not content:
                    raise RuntimeError("OpenAI returned an empty response")
                return content
            except (APITimeoutError, TimeoutError) as e:
                last_exception = e
                logger.error(f"OpenAI timeout (attempt {attempt + 1}/{retries + 1}): {e}")
                wait_time = 2 ** attempt
                if attempt < retries and self._can_wait(wait_time, deadline):
                    logger.warning(f"Retrying in {wait_time:.1f}s...")
                    time.sleep(wait_time)
                    continue
                break
            except APIConnectionError as e:
                last_exception = e
                logger.error(
                    f"OpenAI APIConnectionError (attempt {attempt + 1}/{retries + 1}): "
                    f"{e} (cause: {e.__cause__})"
                )
                wait_time = 2 ** attempt
                if attempt < retries and self._can_wait(wait_time, deadline):
                    logger.warning(f"Recreating client and retrying in {wait_time:.1f}s...")
                    time.sleep(wait_time)
                    client = self._create_client(budget)
                    continue
                break
            except RateLimitError as e:
                last_exception = e
                logger.error(f"OpenAI rate limit (attempt {attempt + 1}/{retries + 1}): {e}")
                wait_time = 5 + attempt * 5
                if attempt < retries and self._can_wait(wait_time, deadline):
                    logger.warning(f"Waiting {wait_time:.1f}s for rate limit...")
                    time.sleep(wait_time)
                    continue
                break
            except APIError as e:
                last_exception = e
                status_code = getattr(e, "status_code", None)
                logger.error(f"OpenAI APIError (status {status_code}): {e}")
                if status_code == 401 or "api_key" in str(e).lower():
                    raise ValueError(
                        f"OpenAI API authentication failed. Check your API key. Error: {e}"
                    ) from e
                break

        if last_exception is None:
            raise RuntimeError(f"OpenAI API deadline of {budget:.1f}s passed before a request")
        raise RuntimeError(
            f"OpenAI API error after {attempts} attempts: "
            f"{type(last_exception).__name__}: {last_exception}"
        ) from last_exception

    @staticmethod
    def _can_wait(wait_time: float, deadline: float) -> bool:
        # A wait that uses up the rest of the deadline leaves no time to retry
        if wait_time < deadline - time.monotonic():
            return True
        logger.warning(f"Not retrying: {wait_time:.1f}s wait would pass the deadline")
        return False
