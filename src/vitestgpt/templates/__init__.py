"""Prompt templates for vitestgpt."""

from vitestgpt.templates.renderer import PROMPT_NAMES, PromptRenderer

__all__ = ["PROMPT_NAMES", "PromptRenderer"]
