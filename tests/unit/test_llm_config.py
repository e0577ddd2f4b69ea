"""Unit tests for LLMConfig entity validation."""

import pytest

from vitestgpt.models.llm_config import VALID_PROVIDERS, LLMConfig


class TestLLMConfig:
    """Tests for LLMConfig entity."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the default OpenAI configuration."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        config = LLMConfig()

        assert config.provider == "openai"
        assert config.model == "gpt-4o-mini"
        assert config.temperature == 0.0
        assert config.max_tokens == 4096
        assert config.enabled is True
        assert config.api_key is None

    def test_api_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the provider's standard variable fills a missing key."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

        config = LLMConfig(provider="claude", model="claude-3-haiku")

        assert config.api_key == "env-key"

    def test_explicit_key_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an explicit key is not overridden by the environment."""
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")

        config = LLMConfig(api_key="explicit")

        assert config.api_key == "explicit"

    def test_ollama_default_api_base(self) -> None:
        """Test Ollama gets a local API base."""
        config = LLMConfig(provider="ollama", model="llama3.2")

        assert config.api_base == "http://localhost:11434"
        assert config.requires_api_key is False

    def test_provider_is_normalized(self) -> None:
        """Test provider names are case-insensitive."""
        assert LLMConfig(provider=" Ollama ", model="llama3.2").provider == "ollama"

    def test_invalid_provider(self) -> None:
        """Test unknown providers raise ValueError."""
        with pytest.raises(ValueError, match="Invalid provider"):
            LLMConfig(provider="invalid")

    def test_empty_model(self) -> None:
        """Test an empty model raises ValueError."""
        with pytest.raises(ValueError, match="Model identifier cannot be empty"):
            LLMConfig(model="  ")

    @pytest.mark.parametrize("temperature", [-0.1, 2.5])
    def test_temperature_range(self, temperature: float) -> None:
        """Test temperature outside 0..2 raises ValueError."""
        with pytest.raises(ValueError, match="temperature"):
            LLMConfig(temperature=temperature)

    def test_max_tokens_positive(self) -> None:
        """Test non-positive max_tokens raises ValueError."""
        with pytest.raises(ValueError, match="max_tokens"):
            LLMConfig(max_tokens=0)

    def test_valid_providers(self) -> None:
        """Test the supported provider set."""
        assert VALID_PROVIDERS == {"openai", "claude", "gemini", "ollama", "bedrock"}


class TestLLMConfigHelpers:
    """Tests for validation warnings, serialization and model naming."""

    def test_missing_key_warning(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a cloud provider without a key produces a warning."""
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

        warnings = LLMConfig(provider="gemini", model="gemini-pro").validate()

        assert any("GOOGLE_API_KEY" in w for w in warnings)

    def test_to_dict_redacts_key(self) -> None:
        """Test the API key never appears in serialized output."""
        data = LLMConfig(api_key="sk-secret").to_dict()

        assert data["api_key"] == "***"
        assert "sk-secret" not in str(data)

    def test_from_dict(self) -> None:
        """Test building a config from a dictionary."""
        config = LLMConfig.from_dict({"provider": "bedrock", "model": "anthropic.claude-v2", "max_tokens": 1000})

        assert config.provider == "bedrock"
        assert config.max_tokens == 1000

    @pytest.mark.parametrize(
        "provider,model,expected",
        [
            ("openai", "gpt-4o-mini", "openai/gpt-4o-mini"),
            ("claude", "claude-3-haiku", "anthropic/claude-3-haiku"),
            ("ollama", "llama3.2", "ollama/llama3.2"),
            ("openai", "openai/o4-mini", "openai/o4-mini"),
        ],
    )
    def test_litellm_model_name(self, provider: str, model: str, expected: str) -> None:
        """Test LiteLLM provider prefixes."""
        config = LLMConfig(provider=provider, model=model, api_key="k")

        assert config.get_litellm_model_name() == expected

    def test_litellm_model_override(self) -> None:
        """Test a per-call model override is prefixed too."""
        config = LLMConfig(api_key="k")

        assert config.get_litellm_model_name("o4-mini") == "openai/o4-mini"
