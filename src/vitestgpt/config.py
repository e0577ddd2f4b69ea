"""vitestgpt configuration system.

Configuration is YAML-based with a few CLI overrides (--attempts, --model,
--test-name-pattern). Supports environment variable substitution (${VAR})
in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.vitestgpt/config.yaml
3. ./vitestgpt.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vitestgpt.models.llm_config import LLMConfig

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class RunnerConfig:
    """Test runner and repair loop settings.

    Attributes:
        attempt_limit: Maximum test runs in the repair loop
        grace_period: Seconds to wait after rewriting the source file
        poll_interval: Seconds between checks while waiting for a human
        test_name_pattern: Optional vitest --testNamePattern filter
        timeout: Seconds before a test run is killed (None waits forever)
    """

    attempt_limit: int = 5
    grace_period: float = 0.5
    poll_interval: float = 0.5
    test_name_pattern: str | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        if self.attempt_limit < 1:
            raise ValueError(f"attempt_limit must be at least 1. Got: {self.attempt_limit}")
        if self.grace_period < 0:
            raise ValueError(f"grace_period cannot be negative. Got: {self.grace_period}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive. Got: {self.poll_interval}")


@dataclass
class PromptsConfig:
    """Prompt template settings.

    Attributes:
        directory: Directory whose templates override the packaged prompts
    """

    directory: str | None = None


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes:
        file: Optional log file receiving every record at DEBUG level
    """

    file: str | None = None


@dataclass
class VitestGPTConfig:
    """Top-level vitestgpt configuration.

    Attributes:
        llm: LLM provider settings
        runner: Test runner and repair loop settings
        prompts: Prompt template overrides
        logging: Log file settings
    """

    llm: LLMConfig = field(default_factory=LLMConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Runtime overrides (set by CLI)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    @property
    def prompts_dir(self) -> Path | None:
        """Prompts directory, resolved against the config file location."""
        if not self.prompts.directory:
            return None
        directory = Path(self.prompts.directory)
        if not directory.is_absolute() and self._config_path is not None:
            directory = self._config_path.parent / directory
        return directory


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${OPENAI_API_KEY} -> value of OPENAI_API_KEY

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.vitestgpt/config.yaml
    2. ./vitestgpt.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".vitestgpt" / "config.yaml",
        start_path / "vitestgpt.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> VitestGPTConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        VitestGPTConfig instance

    Raises:
        ValueError: If a value is invalid or a referenced variable is unset
    """
    data = substitute_env_vars(data)

    config = VitestGPTConfig()

    if data.get("llm"):
        config.llm = LLMConfig.from_dict(data["llm"])

    if data.get("runner"):
        runner_data = data["runner"]
        defaults = RunnerConfig()
        config.runner = RunnerConfig(
            attempt_limit=int(runner_data.get("attempt_limit", defaults.attempt_limit)),
            grace_period=float(runner_data.get("grace_period", defaults.grace_period)),
            poll_interval=float(runner_data.get("poll_interval", defaults.poll_interval)),
            test_name_pattern=runner_data.get("test_name_pattern"),
            timeout=runner_data.get("timeout"),
        )

    if data.get("prompts"):
        config.prompts = PromptsConfig(directory=data["prompts"].get("directory"))

    if data.get("logging"):
        config.logging = LoggingConfig(file=data["logging"].get("file"))

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> VitestGPTConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        VitestGPTConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
        ValueError: If the file content is invalid
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {found_path}")
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = VitestGPTConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# vitestgpt Configuration

# LLM settings
llm:
  provider: "openai"     # openai, claude, gemini, ollama, bedrock
  model: "gpt-4o-mini"   # Model to use
  # api_key: "${OPENAI_API_KEY}"  # Defaults to the provider's standard variable
  # api_base: "http://localhost:11434"  # Ollama server URL
  temperature: 0
  max_tokens: 4096

# Test runner and repair loop
runner:
  attempt_limit: 5       # Maximum vitest runs before giving up
  grace_period: 0.5      # Seconds to wait after a source rewrite
  poll_interval: 0.5     # Seconds between checks for resolved conflicts
  # test_name_pattern: "adds two numbers"
  # timeout: 120         # Seconds before a test run is killed

# Prompt overrides (templates named <prompt>.md.j2)
# prompts:
#   directory: ".vitestgpt/prompts"

# logging:
#   file: ".vitestgpt/vitestgpt.log"
'''
