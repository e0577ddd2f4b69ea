"""Concrete pipeline stages.

Setup -> Analysis -> Testplan -> Write -> Test -> Finish
"""

import json
import logging

from vitestgpt.analyzers.isolator import (
    EXTENSION_TO_LANGUAGE,
    FunctionIsolator,
    IsolationStatus,
)
from vitestgpt.llm.client import strip_code_fences
from vitestgpt.models.context import PipelineContext
from vitestgpt.pipeline.repair import RepairState, TestRepairLoop
from vitestgpt.pipeline.stage import Stage
from vitestgpt.runners.vitest import VitestRunner
from vitestgpt.templates.renderer import PromptRenderer
from vitestgpt.utils.files import (
    ensure_file_exists,
    find_manifest,
    make_relative_import_path,
    write_text,
)


class SetupStage(Stage):
    """Resolves the runner and loads everything the later stages read."""

    name = "Setup"

    def __init__(self, runner: VitestRunner, logger: logging.Logger | None = None) -> None:
        super().__init__(logger)
        self.runner = runner

    def process(self, context: PipelineContext) -> PipelineContext:
        self.runner.resolve()

        context.raw_source = ensure_file_exists(context.input_file).read_text(encoding="utf-8")
        write_text(context.output_file, "")

        manifest = find_manifest(context.input_file)
        context.manifest_file = manifest
        context.manifest_contents = None
        if manifest is not None:
            self.logger.info("Reading package.json from: %s", manifest)
            try:
                context.manifest_contents = json.loads(manifest.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                self.logger.warning("Ignoring invalid %s: %s", manifest, e)

        context.language = EXTENSION_TO_LANGUAGE.get(context.input_file.suffix.lower(), "javascript")
        context.relative_import = make_relative_import_path(context.input_file, context.output_file)
        return context


class AnalysisStage(Stage):
    """Isolates the target function and checks that it is exported."""

    name = "Analysis"

    def __init__(
        self,
        isolator: FunctionIsolator | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.isolator = isolator or FunctionIsolator()

    def process(self, context: PipelineContext) -> PipelineContext:
        result = self.isolator.isolate(context.raw_source, context.function_name, context.language)
        name = context.function_name

        if result.status is IsolationStatus.NOT_FOUND:
            message = f'Function "{name}" not found in file "{context.input_file}".'
        elif result.status is IsolationStatus.MALFORMED:
            message = f'Function "{name}" in file "{context.input_file}" has an unterminated body.'
        elif result.status is IsolationStatus.NOT_EXPORTED:
            message = f'Function "{name}" is not exported! You must export the function to test it.'
        else:
            context.isolated_function = result.snippet
            context.uses_default_export = result.default_export
            self.logger.debug("Isolated %s with dependencies: %s", name, result.dependencies)
            return context

        self.logger.error(message)
        context.halt(message)
        return context


class TestplanStage(Stage):
    """Asks the LLM for a test plan for the isolated function."""

    __test__ = False
    name = "Testplan"

    def __init__(
        self,
        renderer: PromptRenderer,
        model: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.renderer = renderer
        self.model = model

    def process(self, context: PipelineContext) -> PipelineContext:
        prompt = self.renderer.render(
            "generateTestplan",
            {
                "function": context.isolated_function,
                "language": context.language,
                "function_name": context.function_name,
            },
        )
        reply = context.send_human_prompt(prompt, model=self.model)
        if not reply.strip():
            self.logger.error("No test plan received for %s", context.function_name)
            context.halt(f"The LLM returned an empty test plan for {context.function_name}.")
            return context

        context.testplan = reply
        return context


class WriteStage(Stage):
    """Asks the LLM for the test file and writes it to disk."""

    name = "Write"

    def __init__(
        self,
        renderer: PromptRenderer,
        model: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self.renderer = renderer
        self.model = model

    @staticmethod
    def import_statement(context: PipelineContext) -> str:
        """Import line for the function under test."""
        if context.uses_default_export:
            return f"import {context.function_name} from '{context.relative_import}'"
        return f"import {{ {context.function_name} }} from '{context.relative_import}'"

    def process(self, context: PipelineContext) -> PipelineContext:
        prompt = self.renderer.render(
            "writeUnitTests",
            {
                "function": context.isolated_function,
                "testplan": context.testplan,
                "language": context.language,
                "import_statement": self.import_statement(context),
                "function_name": context.function_name,
            },
        )
        reply = context.send_human_prompt(prompt, model=self.model, use_history=False)
        if not reply.strip():
            self.logger.error("No response from LLM for %s", context.function_name)
            context.halt(f"The LLM returned no unit tests for {context.function_name}.")
            return context

        context.test_file_contents = strip_code_fences(reply)
        write_text(context.output_file, context.test_file_contents)
        self.logger.info("Wrote unit tests to %s", context.output_file)
        return context


class TestStage(Stage):
    """Runs the repair loop over the generated tests."""

    __test__ = False
    name = "Test"

    def __init__(self, loop: TestRepairLoop, logger: logging.Logger | None = None) -> None:
        super().__init__(logger)
        self.loop = loop

    def process(self, context: PipelineContext) -> PipelineContext:
        state = self.loop.run(context)
        self.logger.debug("Repair loop finished in state %s", state.value)
        if state is RepairState.PASSED:
            self.logger.info(
                "Tests for %s pass after %d run(s)", context.function_name, len(context.attempts)
            )
        return context


class FinishStage(Stage):
    """Logs a structured summary of the run."""

    name = "Finish"

    def process(self, context: PipelineContext) -> PipelineContext:
        # Injected loggers may be plain logging.Logger instances
        self.logger.info(
            "Pipeline execution completed successfully",
            extra={
                "extra_data": {
                    "context": context.to_dict(),
                    "attempts": len(context.attempts),
                }
            },
        )
        return context
