"""
Prompt Optimizer

Turns a short idea into a precise image captioning prompt using the
configured provider.
"""

import logging
from typing import Optional

import httpx

from .config import settings
from .models import ProviderConfig, ProviderKind
from .providers import ConfigurationError, create_adapter

logger = logging.getLogger(__name__)


OPTIMIZE_PROMPT = (
    "You are an expert Prompt Engineer. Refine this idea into a precise image "
    'captioning prompt (keep language consistent with input): "{idea}"'
)


async def optimize_prompt(
    idea: str,
    config: ProviderConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Refine an idea into a captioning prompt.

    Gemini always uses settings.optimize_model; OpenAI-compatible providers
    use the configured model.

    Args:
        idea: Short description of what the captions should cover
        config: Provider configuration
        transport: Optional httpx transport passed to the adapter

    Returns:
        Optimized prompt, or "" for a blank idea or an empty reply

    Raises:
        ConfigurationError: If no API key is configured
        TransportError: On connection failure or non-2xx status
    """
    if not idea.strip():
        return ""
    if not config.api_key.strip():
        raise ConfigurationError(f"Missing API key for provider '{config.provider.value}'")

    model = settings.optimize_model if config.provider is ProviderKind.GOOGLE else None
    adapter = create_adapter(config, transport=transport)

    logger.info(f"Optimizing prompt via {config.provider.value}")
    optimized = await adapter.complete_text(OPTIMIZE_PROMPT.format(idea=idea), config, model=model)
    logger.debug(f"Optimized prompt: {optimized[:80]}")
    return optimized
