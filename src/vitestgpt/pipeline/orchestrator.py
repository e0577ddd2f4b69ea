"""Stage-chain orchestrator.

Runs an ordered, immutable sequence of stages against one PipelineContext.
Once ``should_continue`` becomes False every remaining stage is skipped.
Exceptions never propagate past a stage boundary.
"""

import logging
from collections.abc import Iterable

from vitestgpt.models.context import PipelineContext
from vitestgpt.pipeline.stage import Stage
from vitestgpt.utils.logging import get_logger


class Orchestrator:
    """Executes stages in order with abort semantics."""

    def __init__(self, stages: Iterable[Stage], logger: logging.Logger | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            stages: Stages in execution order
            logger: Logger for stage transitions (defaults to the package logger)
        """
        self.stages: tuple[Stage, ...] = tuple(stages)
        self.logger = logger or get_logger()

    def run(self, context: PipelineContext) -> PipelineContext:
        """Run every stage against ``context`` and return it."""
        for stage in self.stages:
            if not context.should_continue:
                self.logger.debug("Skipping %s stage (pipeline halted)", stage.name)
                continue

            self.logger.info("Entering %s stage", stage.name)
            try:
                stage.process(context)
            except Exception as e:
                context.should_continue = False
                self.logger.error('Error in stage "%s": %s', stage.name, e)
                self.logger.debug("Stage %s failed", stage.name, exc_info=True)

        return context
