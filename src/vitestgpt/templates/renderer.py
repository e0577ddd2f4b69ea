"""Prompt renderer for LLM requests.

Renders the named prompt templates with Jinja2. Templates ship inside the
package; a configured prompts directory takes precedence so individual
prompts can be overridden without touching the rest.
"""

import logging
from pathlib import Path
from typing import Any

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
    select_autoescape,
)

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".md.j2"

PROMPT_NAMES = (
    "systemPrompt",
    "generateTestplan",
    "writeUnitTests",
    "onTestFailed",
    "applyDiffToSourceCode",
)


class PromptRenderer:
    """Renders prompt templates by name."""

    def __init__(self, prompts_dir: Path | str | None = None) -> None:
        """Initialize the renderer.

        Args:
            prompts_dir: Optional directory whose templates override the packaged ones
        """
        loaders = []
        if prompts_dir is not None:
            prompts_dir = Path(prompts_dir)
            if not prompts_dir.is_dir():
                raise ValueError(f"Prompts directory not found: {prompts_dir}")
            loaders.append(FileSystemLoader(str(prompts_dir)))
        loaders.append(PackageLoader("vitestgpt", "templates"))

        self._env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, name: str, data: dict[str, Any] | None = None) -> str:
        """Render a prompt template.

        Args:
            name: Template name without suffix (e.g., "writeUnitTests")
            data: Template variables

        Returns:
            Rendered prompt text

        Raises:
            ValueError: If the template is unknown or rendering fails
        """
        template_name = f"{name}{TEMPLATE_SUFFIX}"
        try:
            template = self._env.get_template(template_name)
        except TemplateNotFound as e:
            logger.error("Prompt template not found: %s", name)
            raise ValueError(f"Prompt template not found: {name}") from e

        try:
            rendered = template.render(**(data or {}))
        except Exception as e:
            logger.error("Prompt rendering failed for %s: %s", name, e)
            raise ValueError(f"Prompt rendering failed for {name}: {e}") from e

        logger.debug("Rendered prompt %s (%d characters)", name, len(rendered))
        return rendered
