"""
Tests for settings and provider config resolution.
"""

from visionforge.config import Settings
from visionforge.models import ProviderKind


class TestProviderConfig:
    """Preset resolution order: explicit > settings > preset."""

    def test_preset_defaults(self, monkeypatch):
        monkeypatch.setenv("VISIONFORGE_API_KEY", "env-key")
        config = Settings(_env_file=None).provider_config(provider=ProviderKind.DEEPSEEK)

        assert config.provider is ProviderKind.DEEPSEEK
        assert config.api_key == "env-key"
        assert config.base_url == "https://api.deepseek.com"
        assert config.model_id == "deepseek-chat"

    def test_plain_api_key_env(self, monkeypatch):
        monkeypatch.delenv("VISIONFORGE_API_KEY", raising=False)
        monkeypatch.setenv("API_KEY", "plain-key")
        assert Settings(_env_file=None).api_key == "plain-key"

    def test_settings_override_presets(self, monkeypatch):
        monkeypatch.setenv("VISIONFORGE_PROVIDER", "openai")
        monkeypatch.setenv("VISIONFORGE_MODEL_ID", "gpt-4o-mini")
        config = Settings(_env_file=None).provider_config()

        assert config.provider is ProviderKind.OPENAI
        assert config.model_id == "gpt-4o-mini"

    def test_explicit_arguments_win(self, monkeypatch):
        monkeypatch.setenv("VISIONFORGE_MODEL_ID", "gpt-4o-mini")
        config = Settings(_env_file=None).provider_config(
            provider=ProviderKind.CUSTOM,
            api_key="k",
            base_url="http://localhost:8000/v1",
            model_id="llava",
        )

        assert config.base_url == "http://localhost:8000/v1"
        assert config.model_id == "llava"

    def test_custom_has_no_default_url(self, monkeypatch):
        monkeypatch.delenv("VISIONFORGE_BASE_URL", raising=False)
        config = Settings(_env_file=None).provider_config(provider=ProviderKind.CUSTOM)
        assert config.base_url is None
