"""LLM configuration entity for vitestgpt.

Defines the provider settings used for test planning, test writing and the
repair conversation. Supports OpenAI, Claude, Gemini, Ollama and Bedrock.
"""

import os
from dataclasses import dataclass, field

VALID_PROVIDERS = frozenset({"openai", "claude", "gemini", "ollama", "bedrock"})

# Standard environment variables consulted when no api_key is configured
PROVIDER_API_KEY_ENV: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GOOGLE_API_KEY",
}

# LiteLLM model prefixes per provider
_LITELLM_PREFIXES: dict[str, str] = {
    "openai": "openai",
    "claude": "anthropic",
    "gemini": "gemini",
    "ollama": "ollama",
    "bedrock": "bedrock",
}


@dataclass
class LLMConfig:
    """Configuration for the LLM provider.

    Attributes:
        provider: LLM provider (openai, claude, gemini, ollama, bedrock)
        model: Default model identifier (e.g., "gpt-4o-mini")
        api_key: API key (falls back to the provider's environment variable)
        api_base: API base URL (required for Ollama)
        temperature: Sampling temperature (0 keeps runs reproducible)
        max_tokens: Maximum response tokens
        enabled: Whether LLM calls are allowed
    """

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = field(default=0.0)
    max_tokens: int = field(default=4096)
    enabled: bool = field(default=True)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.provider = self.provider.lower().strip()

        if self.provider not in VALID_PROVIDERS:
            raise ValueError(
                f"Invalid provider '{self.provider}'. "
                f"Must be one of: {sorted(VALID_PROVIDERS)}"
            )

        if not self.model or not self.model.strip():
            raise ValueError("Model identifier cannot be empty")
        self.model = self.model.strip()

        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(
                f"temperature must be between 0 and 2. Got: {self.temperature}"
            )

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive. Got: {self.max_tokens}")

        if not self.api_key and self.provider in PROVIDER_API_KEY_ENV:
            self.api_key = os.environ.get(PROVIDER_API_KEY_ENV[self.provider]) or None

        if self.provider == "ollama" and not self.api_base:
            self.api_base = "http://localhost:11434"

    @property
    def requires_api_key(self) -> bool:
        """Return True for cloud providers authenticated by API key."""
        return self.provider in PROVIDER_API_KEY_ENV

    def validate(self) -> list[str]:
        """Validate configuration and return warnings.

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings: list[str] = []

        if self.requires_api_key and not self.api_key:
            warnings.append(
                f"No API key configured for {self.provider}; "
                f"set llm.api_key or {PROVIDER_API_KEY_ENV[self.provider]}"
            )

        if self.max_tokens < 1000:
            warnings.append(
                f"max_tokens is set to {self.max_tokens}, which may truncate generated tests"
            )

        if (
            self.provider == "ollama"
            and self.api_base
            and not self.api_base.startswith(("http://", "https://"))
        ):
            warnings.append(
                f"api_base '{self.api_base}' does not start with http:// or https://"
            )

        return warnings

    def to_dict(self) -> dict[str, str | int | float | bool | None]:
        """Convert to dictionary for serialization (API key redacted)."""
        return {
            "provider": self.provider,
            "model": self.model,
            "api_key": "***" if self.api_key else None,
            "api_base": self.api_base,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, str | int | float | bool | None]) -> "LLMConfig":
        """Create LLMConfig from dictionary."""
        return cls(
            provider=str(data.get("provider", "openai")),
            model=str(data.get("model", "gpt-4o-mini")),
            api_key=data.get("api_key") if data.get("api_key") else None,  # type: ignore[arg-type]
            api_base=data.get("api_base") if data.get("api_base") else None,  # type: ignore[arg-type]
            temperature=float(data.get("temperature", 0.0)),  # type: ignore[arg-type]
            max_tokens=int(data.get("max_tokens", 4096)),  # type: ignore[arg-type]
            enabled=bool(data.get("enabled", True)),
        )

    def get_litellm_model_name(self, model: str | None = None) -> str:
        """Get a model name in LiteLLM ``provider/model`` format.

        Args:
            model: Model override (defaults to the configured model)
        """
        name = (model or self.model).strip()
        prefix = _LITELLM_PREFIXES[self.provider]
        if name.startswith(f"{prefix}/"):
            return name
        return f"{prefix}/{name}"
