"""Unified LLM client wrapper using LiteLLM.

Provides one interface for every supported provider with two call shapes:
- chat(): a full ordered message list (conversational turns)
- complete(): an isolated prompt with an optional system prompt (one-shot)
"""

import logging
import re
from dataclasses import dataclass

import litellm

from vitestgpt.models.llm_config import LLMConfig

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^\s*```[\w.+-]*[ \t]*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)


@dataclass
class LLMResponse:
    """Response from LLM completion.

    Attributes:
        content: Generated text content
        model: Model that generated the response
        usage: Token usage statistics
        finish_reason: Reason for completion (stop, length, etc.)
    """

    content: str
    model: str
    usage: dict[str, int]
    finish_reason: str | None = None


class LLMError(Exception):
    """Exception raised for LLM-related errors."""

    pass


class LLMClient:
    """Unified LLM client using LiteLLM.

    Supports multiple providers through a single interface:
    - OpenAI
    - Claude (Anthropic)
    - Gemini (Google)
    - Ollama (local)
    - Bedrock (AWS)
    """

    def __init__(self, config: LLMConfig) -> None:
        """Initialize LLM client with configuration.

        Args:
            config: LLM configuration with provider, model, and credentials
        """
        self.config = config

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Send an ordered message list and return the first choice.

        Args:
            messages: Ordered ``{"role", "content"}`` messages
            model: Model override (defaults to the configured model)
            max_tokens: Override max_tokens from config

        Returns:
            LLMResponse with generated content

        Raises:
            LLMError: If the completion fails
        """
        completion_kwargs: dict = {
            "model": self.config.get_litellm_model_name(model),
            "messages": [dict(message) for message in messages],
            "temperature": self.config.temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
        }
        if self.config.api_key:
            completion_kwargs["api_key"] = self.config.api_key
        if self.config.api_base:
            completion_kwargs["api_base"] = self.config.api_base

        logger.debug(
            "LLM request: model=%s, %d message(s)",
            completion_kwargs["model"],
            len(messages),
        )

        try:
            response = litellm.completion(**completion_kwargs)
        except litellm.exceptions.AuthenticationError as e:
            raise LLMError(f"Authentication failed for {self.config.provider}: {e}") from e
        except litellm.exceptions.RateLimitError as e:
            raise LLMError(f"Rate limit exceeded for {self.config.provider}: {e}") from e
        except litellm.exceptions.APIConnectionError as e:
            raise LLMError(f"Connection failed to {self.config.provider}: {e}") from e
        except Exception as e:
            raise LLMError(f"LLM completion failed: {e}") from e

        if not response.choices:
            raise LLMError("LLM returned no choices")

        choice = response.choices[0]
        content = choice.message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        logger.debug(
            "LLM response: %d chars, %d tokens",
            len(content),
            usage.get("total_tokens", 0),
        )

        return LLMResponse(
            content=content,
            model=response.model or self.config.model,
            usage=usage,
            finish_reason=choice.finish_reason,
        )

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a one-shot completion, independent of any conversation.

        Args:
            prompt: User prompt for the LLM
            system_prompt: Optional system prompt
            model: Model override
            max_tokens: Override max_tokens from config

        Returns:
            LLMResponse with generated content

        Raises:
            LLMError: If the completion fails
        """
        messages: list[dict[str, str]] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        return self.chat(messages, model=model, max_tokens=max_tokens)

    def check_available(self) -> bool:
        """Check if the LLM provider is reachable with a minimal call."""
        try:
            self.complete("Say 'ok'", max_tokens=10)
            return True
        except LLMError:
            return False


def create_client(config: LLMConfig) -> LLMClient:
    """Create an LLM client from configuration.

    Args:
        config: LLM configuration

    Returns:
        Configured LLMClient instance

    Raises:
        ValueError: If LLM is disabled or credentials are missing
    """
    if not config.enabled:
        raise ValueError("LLM is disabled in configuration")

    if config.requires_api_key and not config.api_key:
        raise ValueError(f"API key required for {config.provider}")

    return LLMClient(config)


def strip_code_fences(text: str) -> str:
    """Remove a Markdown code fence wrapping the whole response.

    Text that is not entirely fenced is returned unchanged.
    """
    match = _CODE_FENCE.match(text)
    if match:
        return match.group("body")
    return text
