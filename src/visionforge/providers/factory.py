"""
Provider Factory

Selects the adapter for a provider kind and holds the per-provider presets
(default endpoint and model).
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from ..models import ProviderConfig, ProviderKind
from .base import ConfigurationError, ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderPreset:
    """Default connection settings for a provider."""

    label: str
    default_url: str
    default_model: str


PROVIDER_PRESETS: Dict[ProviderKind, ProviderPreset] = {
    ProviderKind.GOOGLE: ProviderPreset("Google Gemini", "", "gemini-2.5-flash"),
    ProviderKind.OPENAI: ProviderPreset("OpenAI (ChatGPT)", "https://api.openai.com/v1", "gpt-4o"),
    ProviderKind.DEEPSEEK: ProviderPreset("DeepSeek", "https://api.deepseek.com", "deepseek-chat"),
    ProviderKind.DOUBAO: ProviderPreset(
        "Doubao", "https://ark.cn-beijing.volces.com/api/v3", "doubao-vision-pro-32k"
    ),
    ProviderKind.QWEN: ProviderPreset(
        "Qwen", "https://dashscope.aliyuncs.com/compatible-mode/v1", "qwen-vl-max"
    ),
    ProviderKind.GLM: ProviderPreset("GLM-4V", "https://open.bigmodel.cn/api/paas/v4", "glm-4v"),
    ProviderKind.CLAUDE: ProviderPreset(
        "Claude (via OpenRouter/Compatible)", "https://openrouter.ai/api/v1", "anthropic/claude-3.5-sonnet"
    ),
    ProviderKind.CUSTOM: ProviderPreset("Custom API", "", ""),
}


def validate_config(config: ProviderConfig) -> None:
    """
    Check that a configuration can be used before any request is made.

    Raises:
        ConfigurationError: If the credential or model is missing, or an
            OpenAI-compatible provider has no endpoint
    """
    if not config.api_key.strip():
        raise ConfigurationError(f"Missing API key for provider '{config.provider.value}'")
    if not config.model_id.strip():
        raise ConfigurationError(f"Missing model id for provider '{config.provider.value}'")
    if config.provider.is_openai_compatible and not (config.base_url or "").strip():
        raise ConfigurationError(f"Missing base URL for provider '{config.provider.value}'")


def create_adapter(
    config: ProviderConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProviderAdapter:
    """
    Create the adapter for a provider configuration.

    Args:
        config: Provider configuration
        transport: Optional httpx transport passed to the adapter

    Returns:
        GeminiAdapter for Google, OpenAICompatibleAdapter for everything else
    """
    from ..config import settings

    kwargs = dict(
        timeout=settings.request_timeout,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        transport=transport,
    )

    if config.provider is ProviderKind.GOOGLE:
        from .gemini import GeminiAdapter
        logger.debug(f"Using GeminiAdapter for {config.model_id}")
        return GeminiAdapter(**kwargs)

    from .openai_compat import OpenAICompatibleAdapter
    logger.debug(f"Using OpenAICompatibleAdapter for {config.provider.value} ({config.model_id})")
    return OpenAICompatibleAdapter(**kwargs)
