"""Shared pytest fixtures for vitestgpt tests.

Fixtures are organized by category:
- Path fixtures: sample TypeScript sources
- Fake collaborators: scripted LLM client and test runner
- Context fixtures: ready-to-use PipelineContext instances
"""

from collections.abc import Iterable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vitestgpt.llm.client import LLMClient, LLMResponse
from vitestgpt.models.context import PipelineContext
from vitestgpt.runners.vitest import TestRunResult
from vitestgpt.templates.renderer import PromptRenderer

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def common_sample_path(fixtures_dir: Path) -> Path:
    """Return the path to the shared TypeScript sample module."""
    return fixtures_dir / "samples" / "common.ts"


@pytest.fixture
def common_source(common_sample_path: Path) -> str:
    """Return the contents of the shared TypeScript sample module."""
    return common_sample_path.read_text(encoding="utf-8")


@pytest.fixture
def project_dir(tmp_path: Path, common_source: str) -> Path:
    """Create a small Node project holding a copy of the sample module."""
    (tmp_path / "package.json").write_text('{"name": "sample", "type": "module"}', encoding="utf-8")
    src_dir = tmp_path / "src"
    src_dir.mkdir()
    (src_dir / "common.ts").write_text(common_source, encoding="utf-8")
    (tmp_path / "tests").mkdir()
    return tmp_path


# =============================================================================
# Fake Collaborators
# =============================================================================


def make_response(content: str) -> LLMResponse:
    """Build an LLMResponse with the given content."""
    return LLMResponse(content=content, model="gpt-4o-mini", usage={}, finish_reason="stop")


@pytest.fixture
def llm_client() -> MagicMock:
    """Return a mocked LLMClient; set ``chat.side_effect`` to script replies."""
    client = MagicMock(spec=LLMClient)
    client.chat.return_value = make_response("ok")
    client.complete.return_value = make_response("ok")
    return client


class FakeRunner:
    """Test runner that replays scripted (output, exit_code) results."""

    def __init__(self, results: Iterable[tuple[str, int]] = ()) -> None:
        self.results = list(results)
        self.calls: list[tuple[Path, str | None]] = []
        self.resolved = False

    def resolve(self) -> list[str]:
        self.resolved = True
        return ["vitest"]

    def run(self, test_file: Path, test_name_pattern: str | None = None, cwd: Path | None = None) -> TestRunResult:
        self.calls.append((Path(test_file), test_name_pattern))
        index = min(len(self.calls), len(self.results)) - 1
        output, exit_code = self.results[index]
        return TestRunResult(output=output, exit_code=exit_code, command=f"vitest run {test_file}")


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Return a runner whose every run fails."""
    return FakeRunner([("FAIL  1 test failed", 1)])


@pytest.fixture
def renderer() -> PromptRenderer:
    """Return a renderer over the packaged prompt templates."""
    return PromptRenderer()


# =============================================================================
# Context Fixtures
# =============================================================================


@pytest.fixture
def context(project_dir: Path, llm_client: MagicMock) -> PipelineContext:
    """Return a context targeting ``deepClone`` in the sample project."""
    return PipelineContext(
        input_file=project_dir / "src" / "common.ts",
        function_name="deepClone",
        output_file=project_dir / "tests" / "deepClone.test.ts",
        client=llm_client,
        system_prompt="You write Vitest tests.",
    )


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    """Return the FakeRunner class for scripting per-test results."""
    return FakeRunner


@pytest.fixture
def llm_response():
    """Return a factory building LLMResponse objects from text."""
    return make_response
