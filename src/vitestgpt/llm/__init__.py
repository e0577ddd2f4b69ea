"""LLM integration module for vitestgpt.

Provides the LiteLLM-backed client used for conversational turns and one-shot
requests.
"""

from vitestgpt.llm.client import (
    LLMClient,
    LLMError,
    LLMResponse,
    create_client,
    strip_code_fences,
)
from vitestgpt.models.llm_config import VALID_PROVIDERS, LLMConfig

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMError",
    "LLMResponse",
    "VALID_PROVIDERS",
    "create_client",
    "strip_code_fences",
]
