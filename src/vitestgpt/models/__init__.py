"""Data models for vitestgpt.

- PipelineContext: per-run mutable state threaded through the stages
- AttemptRecord: outcome of one test-runner invocation
- ConversationMessage: chat message exchanged with the LLM
- LLMConfig: LLM provider configuration
"""

from vitestgpt.models.context import AttemptRecord, ConversationMessage, PipelineContext
from vitestgpt.models.llm_config import VALID_PROVIDERS, LLMConfig

__all__ = [
    "AttemptRecord",
    "ConversationMessage",
    "LLMConfig",
    "PipelineContext",
    "VALID_PROVIDERS",
]
