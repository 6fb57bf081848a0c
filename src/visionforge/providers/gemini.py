"""
Gemini Structured-Schema Adapter

Calls the Gemini generateContent endpoint with a declared response schema.
Replies that fail to parse degrade to a raw-text caption.
"""

import logging
from typing import Any, Dict, Optional

from ..config import settings
from ..models import ImageSource, ProcessingOptions, ProviderConfig
from .base import ParseError, ProviderAdapter, encode_image

logger = logging.getLogger(__name__)


CAPTION_PROPERTY = {"type": "STRING", "description": "Detailed description based on prompt."}

# Field map key -> response schema property
SCHEMA_PROPERTIES: Dict[str, Dict[str, Any]] = {
    "confidence": {"type": "NUMBER", "description": "Confidence score 0-1."},
    "tags": {
        "type": "ARRAY",
        "items": {"type": "STRING"},
        "description": "Key visual tags.",
    },
    "ocr_text": {"type": "STRING", "description": "All visible text in the image. Empty if none."},
    "colors": {
        "type": "ARRAY",
        "items": {"type": "STRING"},
        "description": "Dominant colors in Hex format (e.g. #FF0000).",
    },
    "category": {
        "type": "STRING",
        "description": "General category of the image (e.g. Scenery, Document, Person).",
    },
    "reasoning": {
        "type": "STRING",
        "description": "Brief reasoning for why the caption was generated this way.",
    },
}


def build_response_schema(options: ProcessingOptions) -> Dict[str, Any]:
    """
    Build the response schema for the enabled options.

    caption is always required; every enabled option adds one optional property.
    """
    properties = {"caption": CAPTION_PROPERTY}
    for key in options.requested_keys():
        properties[key] = SCHEMA_PROPERTIES[key]

    return {
        "type": "OBJECT",
        "properties": properties,
        "required": ["caption"],
    }


class GeminiAdapter(ProviderAdapter):
    """
    Structured-schema adapter for Google Gemini.
    """

    recover_parse_errors = True
    protocol = "gemini"

    def _endpoint(self, config: ProviderConfig, model: str) -> str:
        base_url = (config.base_url or settings.gemini_base_url).rstrip("/")
        return f"{base_url}/models/{model}:generateContent"

    @staticmethod
    def _headers(config: ProviderConfig) -> Dict[str, str]:
        return {"x-goog-api-key": config.api_key}

    @staticmethod
    def _reply_text(data: Any) -> str:
        """
        Concatenate the text parts of the first candidate.

        A reply without candidates (e.g. blocked by safety filters) yields "".
        """
        try:
            candidates = data.get("candidates") or []
            if not candidates:
                return ""
            parts = candidates[0].get("content", {}).get("parts") or []
            return "".join(part.get("text", "") for part in parts)
        except AttributeError as e:
            raise ParseError(f"Unexpected generateContent response shape: {e}", raw_text=str(data)) from e

    async def _request_reply(
        self,
        image: ImageSource,
        prompt: str,
        config: ProviderConfig,
        options: ProcessingOptions,
    ) -> str:
        body = {
            "contents": [
                {
                    "parts": [
                        {"inline_data": {"mime_type": image.mime_type, "data": encode_image(image)}},
                        {"text": prompt},
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": build_response_schema(options),
            },
        }

        data = await self._post_json(self._endpoint(config, config.model_id), self._headers(config), body)
        # An empty reply parses as an empty object
        return self._reply_text(data) or "{}"

    async def complete_text(
        self,
        prompt: str,
        config: ProviderConfig,
        model: Optional[str] = None,
    ) -> str:
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        data = await self._post_json(
            self._endpoint(config, model or config.model_id),
            self._headers(config),
            body,
        )
        return self._reply_text(data).strip()
