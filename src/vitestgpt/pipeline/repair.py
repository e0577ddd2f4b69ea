"""Bounded test-repair loop.

Runs the generated test file, and on failure asks the LLM (with the whole
conversation) for a repair directive:

- fix-unit-test: the reply replaces the test file
- fix-source-code: the diff is applied to the full source file with a one-shot
  LLM call, then a human resolves the conflict markers before the next run
- exit: the pipeline halts with the LLM's message

Each iteration runs the tests exactly once, so the loop makes at most
``attempt_limit`` test runs.
"""

import logging
import time
from enum import Enum

from vitestgpt.llm.client import strip_code_fences
from vitestgpt.models.context import AttemptRecord, PipelineContext
from vitestgpt.pipeline.actions import (
    Exit,
    FixSourceCode,
    FixUnitTest,
    Unrecognized,
    parse_repair_action,
)
from vitestgpt.runners.vitest import VitestRunner
from vitestgpt.templates.renderer import PromptRenderer
from vitestgpt.utils.files import has_conflict_markers, watch_file_until, write_text
from vitestgpt.utils.logging import get_logger

DEFAULT_ATTEMPT_LIMIT = 5


class RepairState(Enum):
    """Lifecycle of one repair loop."""

    RUNNING = "running"
    PASSED = "passed"
    EXPLICIT_EXIT = "explicit_exit"
    BUDGET_EXHAUSTED = "budget_exhausted"


class TestRepairLoop:
    """Runs tests and applies LLM repair directives until they pass."""

    __test__ = False

    def __init__(
        self,
        runner: VitestRunner,
        renderer: PromptRenderer,
        logger: logging.Logger | None = None,
        attempt_limit: int = DEFAULT_ATTEMPT_LIMIT,
        grace_period: float = 0.5,
        poll_interval: float = 0.5,
        test_name_pattern: str | None = None,
        model: str | None = None,
        watch_timeout: float | None = None,
    ) -> None:
        """Initialize the loop.

        Args:
            runner: Test runner used for every attempt
            renderer: Prompt renderer for onTestFailed and applyDiffToSourceCode
            logger: Logger for progress (defaults to the package logger)
            attempt_limit: Maximum number of test runs
            grace_period: Seconds to wait after rewriting the source file
            poll_interval: Seconds between checks while waiting on a human
            test_name_pattern: Optional vitest --testNamePattern filter
            model: Model override for repair requests
            watch_timeout: Optional bound on the conflict-resolution wait
        """
        if attempt_limit < 1:
            raise ValueError(f"attempt_limit must be at least 1, got {attempt_limit}")

        self.runner = runner
        self.renderer = renderer
        self.logger = logger or get_logger()
        self.attempt_limit = attempt_limit
        self.grace_period = grace_period
        self.poll_interval = poll_interval
        self.test_name_pattern = test_name_pattern
        self.model = model
        self.watch_timeout = watch_timeout
        self.state = RepairState.RUNNING
        self.iteration = 0

    def run(self, context: PipelineContext) -> RepairState:
        """Run the loop to completion and return the final state."""
        self.state = RepairState.RUNNING
        self.iteration = 0

        while self.iteration < self.attempt_limit:
            self.iteration += 1

            result = self.runner.run(context.output_file, self.test_name_pattern)
            context.attempts.append(AttemptRecord(result_text=result.output, exit_code=result.exit_code))

            if result.passed:
                self.logger.info("All tests passed successfully!")
                self.state = RepairState.PASSED
                return self.state

            self.logger.info(
                "Tests failed (attempt %d of %d), asking the LLM how to proceed...",
                self.iteration,
                self.attempt_limit,
            )
            prompt = self.renderer.render(
                "onTestFailed",
                {"command": result.command, "test_output": result.output},
            )
            reply = context.send_human_prompt(prompt, model=self.model)
            action = parse_repair_action(reply)

            if isinstance(action, Unrecognized):
                self.logger.warning("The LLM did not reply with a valid directive, trying again...")
                self.logger.debug("Reply without directive:\n%s", action.raw)
                context.discard_last_assistant_turn()
                continue

            if isinstance(action, Exit):
                self.logger.info("Exiting test stage as requested by the LLM")
                if action.message:
                    self.logger.info(action.message)
                context.halt(action.message)
                self.state = RepairState.EXPLICIT_EXIT
                return self.state

            if isinstance(action, FixUnitTest):
                self.logger.info("Rewriting unit tests as requested by the LLM...")
                write_text(context.output_file, action.payload)
                context.test_file_contents = action.payload
            elif isinstance(action, FixSourceCode):
                self.apply_source_fix(context, action.diff)

        self.logger.warning("Tests still failing after %d attempts, aborting pipeline", self.attempt_limit)
        context.halt(
            f"Tests for {context.function_name} still fail after {self.attempt_limit} attempts. "
            f"Review {context.output_file} manually."
        )
        self.state = RepairState.BUDGET_EXHAUSTED
        return self.state

    def apply_source_fix(self, context: PipelineContext, diff: str) -> None:
        """Merge ``diff`` into the source file and wait for a human to resolve it.

        The merge is a one-shot LLM request that does not touch the
        conversation history.
        """
        if context.client is None:
            raise RuntimeError("No LLM client attached to the pipeline context")

        self.logger.info("Applying diff to source code...")
        source_code = context.input_file.read_text(encoding="utf-8")
        prompt = self.renderer.render(
            "applyDiffToSourceCode",
            {"diff": diff, "source_code": source_code},
        )
        response = context.client.complete(prompt, model=self.model)
        write_text(context.input_file, strip_code_fences(response.content))

        time.sleep(self.grace_period)

        self.logger.info("Resolve the conflict markers in %s to continue", context.input_file)
        context.raw_source = watch_file_until(
            context.input_file,
            self._conflicts_resolved,
            poll_interval=self.poll_interval,
            timeout=self.watch_timeout,
        )

    def _conflicts_resolved(self, content: str) -> bool:
        if has_conflict_markers(content):
            self.logger.info("Waiting for user to fix source code...")
            return False
        self.logger.info("Source code fixed by user, continuing pipeline...")
        return True
