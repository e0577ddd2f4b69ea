"""Unit tests for the concrete pipeline stages."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vitestgpt.models.context import PipelineContext
from vitestgpt.pipeline.repair import TestRepairLoop
from vitestgpt.pipeline.stages import (
    AnalysisStage,
    FinishStage,
    SetupStage,
    TestplanStage,
    TestStage,
    WriteStage,
)
from vitestgpt.runners.vitest import TestRunnerUnavailableError
from vitestgpt.templates.renderer import PromptRenderer


class TestSetupStage:
    """Tests for SetupStage."""

    def test_loads_source_and_derives_paths(self, context: PipelineContext, fake_runner, common_source: str) -> None:
        """Setup reads the source, truncates the output and derives metadata."""
        context.output_file.write_text("stale content")

        SetupStage(fake_runner).process(context)

        assert fake_runner.resolved is True
        assert context.raw_source == common_source
        assert context.output_file.read_text() == ""
        assert context.manifest_file is not None and context.manifest_file.name == "package.json"
        assert context.manifest_contents == {"name": "sample", "type": "module"}
        assert context.language == "typescript"
        assert context.relative_import == "../src/common"

    def test_invalid_manifest_is_ignored(self, context: PipelineContext, fake_runner, project_dir: Path) -> None:
        """Broken package.json files are logged and skipped."""
        (project_dir / "package.json").write_text("{not json")

        SetupStage(fake_runner).process(context)

        assert context.manifest_file is not None
        assert context.manifest_contents is None
        assert context.should_continue is True

    def test_javascript_extension(self, project_dir: Path, fake_runner) -> None:
        """.js sources are tagged javascript."""
        source = project_dir / "src" / "util.js"
        source.write_text("export function f() {}")
        ctx = PipelineContext(input_file=source, function_name="f", output_file=project_dir / "util.test.js")

        SetupStage(fake_runner).process(ctx)

        assert ctx.language == "javascript"
        assert ctx.relative_import == "./src/util"

    def test_missing_source_raises(self, tmp_path: Path, fake_runner) -> None:
        """A missing input file raises for the orchestrator to catch."""
        ctx = PipelineContext(input_file=tmp_path / "nope.ts", function_name="f", output_file=tmp_path / "f.test.ts")

        with pytest.raises(FileNotFoundError):
            SetupStage(fake_runner).process(ctx)

    def test_unavailable_runner_raises(self, context: PipelineContext) -> None:
        """An unresolvable vitest raises before any file is touched."""
        runner = MagicMock()
        runner.resolve.side_effect = TestRunnerUnavailableError()

        with pytest.raises(TestRunnerUnavailableError):
            SetupStage(runner).process(context)

        assert not context.output_file.exists()


class TestAnalysisStage:
    """Tests for AnalysisStage."""

    def test_isolates_exported_function(self, context: PipelineContext, common_source: str) -> None:
        """The snippet is stored and the pipeline continues."""
        context.raw_source = common_source

        AnalysisStage().process(context)

        assert context.should_continue is True
        assert "export function deepClone" in context.isolated_function
        assert context.uses_default_export is False

    def test_default_export(self, context: PipelineContext, common_source: str) -> None:
        """Default exports are recorded on the context."""
        context.raw_source = common_source
        context.function_name = "clamp"

        AnalysisStage().process(context)

        assert context.uses_default_export is True

    def test_not_found_halts(self, context: PipelineContext, common_source: str) -> None:
        """A missing function halts with a not-found message."""
        context.raw_source = common_source
        context.function_name = "missing"

        AnalysisStage().process(context)

        assert context.should_continue is False
        assert 'Function "missing" not found' in context.message_to_user

    def test_not_exported_halts_with_distinct_message(self, context: PipelineContext) -> None:
        """A private function halts with the export hint."""
        context.raw_source = "function hidden() { return 1 }"
        context.function_name = "hidden"

        AnalysisStage().process(context)

        assert context.should_continue is False
        assert "is not exported" in context.message_to_user
        assert "not found" not in context.message_to_user


class TestTestplanStage:
    """Tests for TestplanStage."""

    def test_stores_plan(
        self, context: PipelineContext, renderer: PromptRenderer, llm_client: MagicMock, llm_response
    ) -> None:
        """The reply becomes the test plan and joins the history."""
        context.isolated_function = "export function deepClone() {}"
        llm_client.chat.return_value = llm_response("- clones dates")

        TestplanStage(renderer).process(context)

        assert context.testplan == "- clones dates"
        assert context.conversation_history[-1] == {"role": "assistant", "content": "- clones dates"}
        assert "export function deepClone() {}" in context.conversation_history[-2]["content"]

    def test_empty_plan_halts(
        self, context: PipelineContext, renderer: PromptRenderer, llm_client: MagicMock, llm_response
    ) -> None:
        """A blank reply halts the pipeline."""
        llm_client.chat.return_value = llm_response("   ")

        TestplanStage(renderer).process(context)

        assert context.should_continue is False


class TestWriteStage:
    """Tests for WriteStage."""

    def test_writes_unfenced_tests(
        self, context: PipelineContext, renderer: PromptRenderer, llm_client: MagicMock, llm_response
    ) -> None:
        """The fenced reply is unwrapped and written to the output file."""
        context.relative_import = "../src/common"
        llm_client.chat.return_value = llm_response("```ts\nimport { it } from 'vitest'\n```")

        WriteStage(renderer).process(context)

        assert context.test_file_contents == "import { it } from 'vitest'"
        assert context.output_file.read_text() == "import { it } from 'vitest'"

    def test_sends_without_history(
        self, context: PipelineContext, renderer: PromptRenderer, llm_client: MagicMock, llm_response
    ) -> None:
        """Only the system prompt and the write prompt are sent."""
        context.conversation_history.append({"role": "user", "content": "earlier"})
        llm_client.chat.return_value = llm_response("tests")

        WriteStage(renderer, model="o4-mini").process(context)

        sent = llm_client.chat.call_args[0][0]
        assert [m["role"] for m in sent] == ["system", "user"]
        assert llm_client.chat.call_args[1]["model"] == "o4-mini"

    @pytest.mark.parametrize(
        "default_export,expected",
        [
            (False, "import { deepClone } from '../src/common'"),
            (True, "import deepClone from '../src/common'"),
        ],
    )
    def test_import_statement(self, context: PipelineContext, default_export: bool, expected: str) -> None:
        """Named and default exports import differently."""
        context.relative_import = "../src/common"
        context.uses_default_export = default_export

        assert WriteStage.import_statement(context) == expected

    def test_empty_reply_halts(
        self, context: PipelineContext, renderer: PromptRenderer, llm_client: MagicMock, llm_response
    ) -> None:
        """No tests from the LLM halts the pipeline."""
        llm_client.chat.return_value = llm_response("")

        WriteStage(renderer).process(context)

        assert context.should_continue is False
        assert not context.output_file.exists()


class TestTestAndFinishStages:
    """Tests for TestStage and FinishStage."""

    def test_test_stage_runs_loop(self, context: PipelineContext, make_runner, renderer: PromptRenderer) -> None:
        """TestStage delegates to the repair loop."""
        runner = make_runner([("PASS", 0)])

        TestStage(TestRepairLoop(runner, renderer)).process(context)

        assert len(context.attempts) == 1
        assert context.should_continue is True

    def test_finish_logs_summary(self, context: PipelineContext, caplog) -> None:
        """FinishStage emits the completion summary."""
        with caplog.at_level(logging.INFO, logger="vitestgpt"):
            FinishStage().process(context)

        assert "Pipeline execution completed successfully" in caplog.text
        record = next(r for r in caplog.records if "completed" in r.getMessage())
        assert record.extra_data["attempts"] == 0
        assert "raw_source" not in record.extra_data["context"]

    def test_finish_accepts_plain_logger(self, context: PipelineContext) -> None:
        """A standard library logger works and the summary is still attached."""
        records: list[logging.LogRecord] = []
        logger = logging.Logger("plain")
        handler = logging.Handler()
        handler.emit = records.append  # type: ignore[method-assign]
        logger.addHandler(handler)

        FinishStage(logger=logger).process(context)

        assert context.should_continue is True
        assert records[0].getMessage() == "Pipeline execution completed successfully"
        assert records[0].extra_data["attempts"] == 0
