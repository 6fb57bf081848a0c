"""
VisionForge Configuration
Pydantic Settings for all configurable options.
"""

from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ProviderConfig, ProviderKind


class Settings(BaseSettings):
    """Application settings loaded from VISIONFORGE_* environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_prefix="VISIONFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # --- Provider ---
    provider: ProviderKind = ProviderKind.GOOGLE
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("VISIONFORGE_API_KEY", "API_KEY"),
    )
    base_url: Optional[str] = None  # Falls back to the provider preset
    model_id: Optional[str] = None  # Falls back to the provider preset

    # --- Prompting ---
    default_prompt: str = "Describe this image in detail for training data."
    optimize_model: str = "gemini-2.5-flash"  # Gemini prompt refinement always uses flash

    # --- Wire ---
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    max_tokens: int = 1500
    temperature: float = 0.2
    request_timeout: Optional[float] = None  # None = wait indefinitely

    # --- Working set ---
    image_extensions: List[str] = Field(
        default_factory=lambda: ["png", "jpg", "jpeg", "gif", "webp", "bmp"]
    )

    # --- Logging ---
    log_level: str = "INFO"

    def provider_config(
        self,
        provider: Optional[ProviderKind] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> ProviderConfig:
        """
        Build an immutable ProviderConfig, resolving unset values from presets.

        Explicit arguments win over settings; settings win over presets.
        """
        from .providers.factory import PROVIDER_PRESETS

        kind = ProviderKind(provider or self.provider)
        preset = PROVIDER_PRESETS[kind]

        return ProviderConfig(
            provider=kind,
            api_key=api_key if api_key is not None else self.api_key,
            base_url=base_url or self.base_url or preset.default_url or None,
            model_id=model_id or self.model_id or preset.default_model,
        )


# Global settings instance
settings = Settings()
