"""Unit tests for the stage-chain orchestrator."""

from vitestgpt.models.context import PipelineContext
from vitestgpt.pipeline.orchestrator import Orchestrator
from vitestgpt.pipeline.stage import Stage


class RecordingStage(Stage):
    """Stage that records its invocation and optionally halts or raises."""

    def __init__(self, name: str, calls: list[str], halt: bool = False, error: Exception | None = None) -> None:
        super().__init__()
        self.name = name
        self.calls = calls
        self.halt = halt
        self.error = error

    def process(self, context: PipelineContext) -> PipelineContext:
        self.calls.append(self.name)
        if self.error is not None:
            raise self.error
        if self.halt:
            context.halt(f"{self.name} halted")
        return context


def make_context() -> PipelineContext:
    return PipelineContext(input_file="a.ts", function_name="a", output_file="a.test.ts")


class TestOrchestrator:
    """Tests for Orchestrator.run."""

    def test_runs_stages_in_order(self) -> None:
        """Every stage runs once, in order."""
        calls: list[str] = []
        stages = [RecordingStage(name, calls) for name in ("Setup", "Analysis", "Finish")]

        result = Orchestrator(stages).run(make_context())

        assert calls == ["Setup", "Analysis", "Finish"]
        assert result.should_continue is True

    def test_halt_skips_remaining_stages(self) -> None:
        """Once a stage halts, later stages never run."""
        calls: list[str] = []
        stages = [
            RecordingStage("Setup", calls),
            RecordingStage("Analysis", calls, halt=True),
            RecordingStage("Testplan", calls),
            RecordingStage("Finish", calls),
        ]

        result = Orchestrator(stages).run(make_context())

        assert calls == ["Setup", "Analysis"]
        assert result.should_continue is False
        assert result.message_to_user == "Analysis halted"

    def test_exception_becomes_halt(self) -> None:
        """A raising stage halts the pipeline instead of propagating."""
        calls: list[str] = []
        stages = [
            RecordingStage("Setup", calls, error=OSError("disk full")),
            RecordingStage("Analysis", calls),
        ]

        result = Orchestrator(stages).run(make_context())

        assert calls == ["Setup"]
        assert result.should_continue is False

    def test_halted_context_runs_nothing(self) -> None:
        """A context that arrives halted passes through untouched."""
        calls: list[str] = []
        context = make_context()
        context.halt()

        result = Orchestrator([RecordingStage("Setup", calls)]).run(context)

        assert calls == []
        assert result is context

    def test_stages_are_immutable(self) -> None:
        """The stage sequence is stored as a tuple."""
        calls: list[str] = []
        stages = [RecordingStage("Setup", calls)]
        orchestrator = Orchestrator(stages)
        stages.append(RecordingStage("Extra", calls))

        assert isinstance(orchestrator.stages, tuple)
        assert len(orchestrator.stages) == 1

    def test_error_is_logged(self, caplog) -> None:
        """Stage failures are logged with the stage name."""
        calls: list[str] = []
        stages = [RecordingStage("Write", calls, error=RuntimeError("no reply"))]

        with caplog.at_level("ERROR", logger="vitestgpt"):
            Orchestrator(stages).run(make_context())

        assert 'Error in stage "Write": no reply' in caplog.text
