"""
LLM Client: Clean interface for language model interactions.

This module provides a dependency-injectable LLM client that doesn't rely on globals.
All configuration is passed explicitly. Only the backend talks to the provider;
the frontend goes through client.BackendClient.

Design principles:
- No global state
- Configuration passed via constructor
- Retries transient connection failures, never provider errors
- Optional logging to file
"""

import functools
import json
import os
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, TypeVar

import openai
import tiktoken
from openai import OpenAI

from config import LLMConfig
from logging_utils import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    retryable_exceptions: tuple = (Exception,),
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of attempts.
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay between retries.
        exponential_base: Base for exponential backoff calculation.
        retryable_exceptions: Tuple of exception types to retry on.

    Usage:
        @retry_with_backoff(max_retries=3)
        def my_api_call():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt < max_retries - 1:
                        delay = min(
                            base_delay * (exponential_base ** attempt),
                            max_delay
                        )
                        logger.warning(
                            "retry %d/%d in %.1fs: %s",
                            attempt + 1, max_retries - 1, delay, e.__class__.__name__,
                        )
                        time.sleep(delay)

            # All retries exhausted
            raise last_exception

        return wrapper
    return decorator


@dataclass
class LLMResponse:
    """Structured response from LLM call."""
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def usage(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMStats:
    """Statistics for LLM usage tracking."""
    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0

    def record(self, prompt_tokens: int, completion_tokens: int) -> None:
        self.calls += 1
        self.prompt_tokens += prompt_tokens
        self.completion_tokens += completion_tokens

    def to_dict(self) -> dict[str, int]:
        return {
            "calls": self.calls,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
        }


@functools.lru_cache(maxsize=1)
def _get_encoding():
    return tiktoken.get_encoding("cl100k_base")


def estimate_tokens(text: str) -> int:
    """Estimate token count using tiktoken cl100k_base encoding (loaded once)."""
    return len(_get_encoding().encode(text))


class LLMClient:
    """
    LLM client with explicit configuration.

    Usage:
        config = LLMConfig.from_env()
        client = LLMClient(config)

        messages = [
            {"role": "system", "content": "You are a personal trainer."},
            {"role": "user", "content": "How do I start squatting?"},
        ]
        response = client.chat(messages)
    """

    def __init__(
        self,
        config: LLMConfig,
        log_path: str | None = None,
    ):
        """
        Initialize LLM client.

        Args:
            config: LLM configuration (key, model, temperature, etc.)
            log_path: Optional path to write a JSONL call log. If None, no logging.
        """
        self.config = config
        self.log_path = log_path
        self.stats = LLMStats()
        self._client = OpenAI(api_key=config.api_key, base_url=config.base_url)

    def chat(self, messages: list[dict[str, str]]) -> LLMResponse:
        """
        Send messages to the model.

        Args:
            messages: List of message dicts with 'role' and 'content'.

        Returns:
            LLMResponse with content and token counts.
        """
        completion = self._call_api(messages)
        content = completion.choices[0].message.content or ""

        if completion.usage:
            prompt_tokens = completion.usage.prompt_tokens
            completion_tokens = completion.usage.completion_tokens
        else:
            prompt_tokens = estimate_tokens(json.dumps(messages, ensure_ascii=False))
            completion_tokens = estimate_tokens(content)

        response = LLMResponse(
            content=content,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

        self.stats.record(response.prompt_tokens, response.completion_tokens)
        self._log(messages, response)

        return response

    @retry_with_backoff(
        max_retries=3,
        base_delay=1.0,
        retryable_exceptions=(openai.APIConnectionError,),
    )
    def _call_api(self, messages: list[dict[str, str]]):
        """Make the actual API call (with retry on connection errors)."""
        return self._client.chat.completions.create(
            messages=messages,
            model=self.config.model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            stream=False,
        )

    def _log(self, messages: list[dict[str, str]], response: LLMResponse) -> None:
        """Write log entry to file if log_path is set."""
        if not self.log_path:
            return

        log_entry = {
            "model": self.config.model,
            "messages": messages,
            "response": response.content,
            "prompt_tokens": response.prompt_tokens,
            "completion_tokens": response.completion_tokens,
            "timestamp": datetime.now().isoformat(),
        }

        log_dir = os.path.dirname(self.log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        with open(self.log_path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(log_entry, ensure_ascii=False) + '\n')
