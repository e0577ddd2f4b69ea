"""Vitest runner adapter.

Locates a usable vitest executable and runs a single test file, returning the
combined stdout/stderr text and the process exit code.

Resolution order (each probed with ``--version``):
1. A global ``vitest`` on PATH
2. ``npx --no-install vitest``
3. ``<project>/node_modules/.bin/vitest``
"""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

INSTALL_HINT = (
    "vitest is not installed on this machine.\n"
    "To install globally, run: npm install -g vitest\n"
    "Or add it as a dev dependency and invoke via npx:\n"
    "  npm install --save-dev vitest"
)


class TestRunnerUnavailableError(Exception):
    """Raised when no vitest executable can be resolved."""

    __test__ = False

    def __init__(self, message: str | None = None) -> None:
        self.message = message or INSTALL_HINT
        super().__init__(self.message)


@dataclass
class TestRunResult:
    """Outcome of one vitest invocation.

    Attributes:
        output: Combined stdout and stderr
        exit_code: Process exit code
        command: Rendered command line
    """

    __test__ = False

    output: str
    exit_code: int
    command: str

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


@dataclass
class VitestRunner:
    """Resolves and invokes vitest.

    Attributes:
        project_dir: Directory holding node_modules (defaults to the CWD)
        timeout: Seconds before a test run is killed (None waits forever)
        version_timeout: Seconds allowed for each ``--version`` probe
    """

    project_dir: Path | None = None
    timeout: float | None = None
    version_timeout: float = 30
    _command: list[str] | None = field(default=None, init=False, repr=False)

    def candidates(self) -> list[list[str]]:
        """Candidate command prefixes in resolution order."""
        project_dir = Path(self.project_dir) if self.project_dir else Path.cwd()
        return [
            ["vitest"],
            ["npx", "--no-install", "vitest"],
            [str(project_dir / "node_modules" / ".bin" / "vitest")],
        ]

    def _probe(self, prefix: list[str]) -> bool:
        try:
            result = subprocess.run(
                [*prefix, "--version"],
                capture_output=True,
                text=True,
                timeout=self.version_timeout,
                cwd=self.project_dir,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
            return False
        return result.returncode == 0

    def resolve(self) -> list[str]:
        """Return the command prefix for vitest, probing on first use.

        Raises:
            TestRunnerUnavailableError: If no candidate responds to --version
        """
        if self._command is not None:
            return self._command

        for prefix in self.candidates():
            if self._probe(prefix):
                logger.debug("Using vitest via: %s", " ".join(prefix))
                self._command = prefix
                return prefix

        logger.error(INSTALL_HINT)
        raise TestRunnerUnavailableError()

    def build_command(self, test_file: Path | str, test_name_pattern: str | None = None) -> list[str]:
        """Build ``<vitest> run [--testNamePattern=<p>] <file>``."""
        command = [*self.resolve(), "run"]
        if test_name_pattern:
            command.append(f"--testNamePattern={test_name_pattern}")
        command.append(str(test_file))
        return command

    def run(
        self,
        test_file: Path | str,
        test_name_pattern: str | None = None,
        cwd: Path | None = None,
    ) -> TestRunResult:
        """Run one test file.

        Args:
            test_file: Test file to run
            test_name_pattern: Optional test name filter
            cwd: Working directory (defaults to project_dir)

        Returns:
            TestRunResult with combined output and exit code

        Raises:
            TestRunnerUnavailableError: If vitest cannot be resolved
        """
        command = self.build_command(test_file, test_name_pattern)
        rendered = " ".join(command)
        logger.info("Running: %s", rendered)

        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
                cwd=cwd or self.project_dir,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            logger.warning("Test run timed out after %s seconds", self.timeout)
            return TestRunResult(
                output=f"{output}\nTest run timed out after {self.timeout} seconds",
                exit_code=124,
                command=rendered,
            )
        except (FileNotFoundError, OSError) as e:
            raise TestRunnerUnavailableError(f"Failed to start vitest: {e}") from e

        logger.debug("vitest exited with %d", result.returncode)
        return TestRunResult(output=result.stdout or "", exit_code=result.returncode, command=rendered)
