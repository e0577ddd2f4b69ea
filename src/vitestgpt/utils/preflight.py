"""Preflight validation.

Checks every external dependency the pipeline needs before any LLM call is
made: Node.js, a resolvable vitest, the tree-sitter grammars and the LLM
provider credentials.
"""

import importlib.util
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Any

from vitestgpt.models.llm_config import PROVIDER_API_KEY_ENV, LLMConfig
from vitestgpt.runners.vitest import TestRunnerUnavailableError, VitestRunner


@dataclass
class ToolCheck:
    """Result of checking a single tool.

    Attributes:
        name: Tool name
        available: Whether tool is available
        version: Tool version if available
        required: Whether tool is required for this run
        path: Path to executable if available
        message: Status message (human-readable context)
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    path: str | None = None
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether all required tools are available
        checks: Individual tool check results
        errors: Error messages for missing required tools
        warnings: Warning messages for missing optional tools
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a tool check result."""
        self.checks.append(check)

        if not check.available:
            if check.required:
                self.success = False
                self.errors.append(f"Required tool not found: {check.name}")
            else:
                self.warnings.append(f"Optional tool not found: {check.name}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "path": c.path,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates external tool availability before a run.

    Usage:
        checker = PreflightChecker()
        result = checker.check_all(config.llm)
        if not result.success:
            sys.exit(1)
    """

    def __init__(self, timeout: int = 10) -> None:
        """Initialize preflight checker.

        Args:
            timeout: Timeout in seconds for version checks
        """
        self.timeout = timeout

    def get_command_version(self, command: list[str]) -> str | None:
        """Return the first line of ``<command> --version``, or None."""
        try:
            result = subprocess.run(
                [*command, "--version"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
            if result.returncode == 0:
                output = result.stdout.strip() or result.stderr.strip()
                return output.split("\n")[0] if output else None
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
            pass
        return None

    def check_node(self, required: bool = True) -> ToolCheck:
        """Check if Node.js is available."""
        path = shutil.which("node")
        if path is None:
            return ToolCheck(
                name="node",
                available=False,
                required=required,
                message="Install from: https://nodejs.org",
            )

        return ToolCheck(
            name="node",
            available=True,
            version=self.get_command_version(["node"]),
            required=required,
            path=path,
            message="JavaScript runtime",
        )

    def check_vitest(self, runner: VitestRunner | None = None, required: bool = True) -> ToolCheck:
        """Check if vitest can be resolved (global, npx or node_modules)."""
        runner = runner or VitestRunner()
        try:
            command = runner.resolve()
        except TestRunnerUnavailableError:
            return ToolCheck(
                name="vitest",
                available=False,
                required=required,
                message="Install with: npm install --save-dev vitest",
            )

        return ToolCheck(
            name="vitest",
            available=True,
            version=self.get_command_version(command),
            required=required,
            path=" ".join(command),
            message="Test runner",
        )

    def check_tree_sitter(self, required: bool = True) -> ToolCheck:
        """Check if tree-sitter and tree-sitter-language-pack are importable."""
        ts_spec = importlib.util.find_spec("tree_sitter")
        if ts_spec is None:
            return ToolCheck(
                name="tree-sitter",
                available=False,
                required=required,
                message="Install with: pip install tree-sitter",
            )

        if importlib.util.find_spec("tree_sitter_language_pack") is None:
            return ToolCheck(
                name="tree-sitter",
                available=False,
                required=required,
                message="Install with: pip install tree-sitter-language-pack",
            )

        return ToolCheck(
            name="tree-sitter",
            available=True,
            required=required,
            path=ts_spec.origin,
            message="Function isolation parser (Python package)",
        )

    def check_llm_provider(self, llm: LLMConfig, required: bool = True) -> ToolCheck:
        """Check that the LLM provider is enabled and has credentials.

        Only configuration is checked; no request is sent.
        """
        if not llm.enabled:
            return ToolCheck(
                name=llm.provider,
                available=False,
                required=required,
                message="LLM is disabled in configuration",
            )

        if llm.requires_api_key and not llm.api_key:
            return ToolCheck(
                name=llm.provider,
                available=False,
                required=required,
                message=(
                    f"API key required. Set llm.api_key or "
                    f"{PROVIDER_API_KEY_ENV[llm.provider]} env var"
                ),
            )

        return ToolCheck(
            name=llm.provider,
            available=True,
            required=required,
            path=llm.api_base,
            message=f"LLM provider (model {llm.model})",
        )

    def check_all(self, llm: LLMConfig, runner: VitestRunner | None = None) -> PreflightResult:
        """Run all preflight checks.

        Args:
            llm: LLM configuration to validate
            runner: Runner used to resolve vitest

        Returns:
            PreflightResult with all check results
        """
        result = PreflightResult()
        result.add_check(self.check_node(required=True))
        result.add_check(self.check_vitest(runner, required=True))
        result.add_check(self.check_tree_sitter(required=True))
        result.add_check(self.check_llm_provider(llm, required=True))

        for warning in llm.validate():
            result.warnings.append(warning)

        return result
