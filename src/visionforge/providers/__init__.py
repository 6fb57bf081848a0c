"""
Provider Adapters

Interchangeable vision model providers behind one adapt() contract.
"""

from .base import (
    AdapterError,
    ConfigurationError,
    ParseError,
    ProviderAdapter,
    TransportError,
)
from .factory import PROVIDER_PRESETS, ProviderPreset, create_adapter, validate_config
from .gemini import GeminiAdapter
from .openai_compat import OpenAICompatibleAdapter

__all__ = [
    # Contract
    "ProviderAdapter",
    "create_adapter",
    "validate_config",
    "PROVIDER_PRESETS",
    "ProviderPreset",
    # Variants
    "GeminiAdapter",
    "OpenAICompatibleAdapter",
    # Errors
    "AdapterError",
    "TransportError",
    "ParseError",
    "ConfigurationError",
]
