"""
Base Provider Adapter

Abstract base class defining the adapter contract shared by all providers:
build a provider-specific request for one image, send it, and parse the
reply into a field map restricted to the requested keys.
"""

import base64
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..models import ImageSource, ProcessingOptions, ProviderConfig

logger = logging.getLogger(__name__)


class AdapterError(Exception):
    """Base class for item-scoped provider failures."""
    pass


class TransportError(AdapterError):
    """Raised when a provider is unreachable or answers with a non-2xx status."""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"Connection failed: {body}")
        else:
            super().__init__(f"API Error ({status_code}): {body}")


class ParseError(AdapterError):
    """Raised when a provider reply cannot be parsed."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class ConfigurationError(Exception):
    """Raised when a provider configuration cannot be used for a run."""
    pass


def encode_image(image: ImageSource) -> str:
    """
    Encode image bytes to base64.

    Args:
        image: Image source (in-memory or on disk)

    Returns:
        Base64 encoded image string
    """
    return base64.b64encode(image.read()).decode("utf-8")


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON constant {name}")


class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses implement the wire protocol; this class owns the parse
    policy and the restriction of the field map to requested keys.
    Adapters are stateless across calls.
    """

    # Degrade to {"caption": <raw text>} instead of raising ParseError
    recover_parse_errors: bool = False

    # Human readable protocol name, used in logs
    protocol: str = "base"

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_tokens: int = 1500,
        temperature: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize adapter.

        Args:
            timeout: Per-request timeout in seconds (None waits indefinitely)
            max_tokens: Completion token limit, where the protocol takes one
            temperature: Sampling temperature, where the protocol takes one
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.transport = transport

    @abstractmethod
    async def _request_reply(
        self,
        image: ImageSource,
        prompt: str,
        config: ProviderConfig,
        options: ProcessingOptions,
    ) -> str:
        """Send the analysis request and return the model's reply text."""
        pass

    @abstractmethod
    async def complete_text(
        self,
        prompt: str,
        config: ProviderConfig,
        model: Optional[str] = None,
    ) -> str:
        """Send a text-only prompt and return the reply text ("" when absent)."""
        pass

    def _clean_reply(self, text: str) -> str:
        """Hook for stripping protocol-specific wrapping from the reply."""
        return text

    async def adapt(
        self,
        image: ImageSource,
        prompt: str,
        config: ProviderConfig,
        options: ProcessingOptions,
    ) -> Dict[str, Any]:
        """
        Analyze one image and return its field map.

        The field map holds "caption" (when the provider supplied one) plus
        only those optional keys enabled in options.

        Raises:
            TransportError: On connection failure or non-2xx status
            ParseError: On malformed replies not covered by recover_parse_errors
        """
        logger.debug(f"[{self.protocol}] Analyzing {image.filename} with {config.model_id}")
        reply = await self._request_reply(image, prompt, config, options)
        payload = self.parse_reply(reply)
        return self.select_fields(payload, options)

    def parse_reply(self, reply: str) -> Dict[str, Any]:
        """
        Parse reply text as a strict JSON object (no NaN or Infinity), applying
        the variant's parse policy.
        """
        cleaned = self._clean_reply(reply)
        try:
            payload = json.loads(cleaned, parse_constant=_reject_constant)
            if not isinstance(payload, dict):
                raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
            return payload
        except ValueError as e:  # JSONDecodeError is a ValueError
            if self.recover_parse_errors:
                logger.warning(f"[{self.protocol}] Reply is not valid JSON, using raw text as caption: {e}")
                return {"caption": reply or "Error parsing JSON"}
            raise ParseError(f"Invalid JSON in {self.protocol} reply: {e}", raw_text=reply) from e

    @staticmethod
    def select_fields(payload: Dict[str, Any], options: ProcessingOptions) -> Dict[str, Any]:
        """Restrict a parsed payload to caption plus the requested keys."""
        fields = {}
        if "caption" in payload:
            fields["caption"] = payload["caption"]
        for key in options.requested_keys():
            if key in payload:
                fields[key] = payload[key]
        return fields

    async def _post_json(self, url: str, headers: Dict[str, str], body: Dict[str, Any]) -> Any:
        """
        POST a JSON body and return the decoded JSON response.

        Raises:
            TransportError: On connection failure or non-2xx status
            ParseError: If the response body is not JSON
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, headers=headers, json=body)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.error(f"[{self.protocol}] Cannot connect to {url}: {e}")
            raise TransportError(None, str(e)) from e

        if not response.is_success:
            logger.error(f"[{self.protocol}] API error {response.status_code}: {response.text[:200]}")
            raise TransportError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Response body is not JSON: {e}", raw_text=response.text) from e
