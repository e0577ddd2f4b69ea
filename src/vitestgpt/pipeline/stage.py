"""Abstract pipeline stage.

A stage reads and mutates the shared PipelineContext. Stages never decide
what runs next; the Orchestrator owns ordering and abort handling.
"""

import logging
from abc import ABC, abstractmethod

from vitestgpt.models.context import PipelineContext
from vitestgpt.utils.logging import get_logger


class Stage(ABC):
    """One named step of the test-generation pipeline.

    Attributes:
        name: Stage identifier used in log messages (e.g., "Setup")
        logger: Logger receiving stage output
    """

    name: str = "Stage"

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger()

    @abstractmethod
    def process(self, context: PipelineContext) -> PipelineContext:
        """Run the stage against ``context``.

        Implementations halt the pipeline with ``context.halt(...)``. Any
        exception raised here is caught by the Orchestrator and treated as a
        halt.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
