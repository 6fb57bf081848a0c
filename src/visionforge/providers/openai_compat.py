"""
OpenAI-Compatible Chat Adapter

Free-form JSON adapter for every provider that exposes an OpenAI-style
/chat/completions endpoint (OpenAI, DeepSeek, Doubao, Qwen, GLM, OpenRouter, ...).
The expected JSON shape is described in the prompt itself, so a reply that
is not valid JSON fails the item.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..models import ImageSource, ProcessingOptions, ProviderConfig
from .base import ParseError, ProviderAdapter, encode_image

logger = logging.getLogger(__name__)


JSON_INSTRUCTION = """Please respond in strict JSON format without markdown code blocks.
Your main task is to caption the image based on the prompt: "{prompt}"

Required JSON Structure:
{{
  {fields}
}}"""

# Field map key -> line describing it in the required JSON structure
FIELD_INSTRUCTIONS: Dict[str, str] = {
    "caption": '"caption": "detailed description..."',
    "confidence": '"confidence": (number 0-1)',
    "tags": '"tags": ["tag1", "tag2"]',
    "ocr_text": '"ocr_text": "extracted text from image (if any)"',
    "colors": '"colors": ["#HexCode1", "#HexCode2"] (dominant colors)',
    "category": '"category": "general category (e.g. Portrait, Landscape, UI)"',
    "reasoning": '"reasoning": "brief explanation of the analysis"',
}

_FENCE_RE = re.compile(r"```json\n?|\n?```")


def build_instruction(prompt: str, options: ProcessingOptions) -> str:
    """Build the instruction block listing caption plus the enabled keys."""
    keys = ["caption"] + options.requested_keys()
    fields = ",\n  ".join(FIELD_INSTRUCTIONS[key] for key in keys)
    return JSON_INSTRUCTION.format(prompt=prompt, fields=fields)


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` fencing some models add despite instructions."""
    return _FENCE_RE.sub("", text).strip()


class OpenAICompatibleAdapter(ProviderAdapter):
    """
    Chat-completions adapter. Image goes in as a base64 data URI.
    """

    recover_parse_errors = False
    protocol = "openai-compatible"

    @staticmethod
    def _endpoint(config: ProviderConfig) -> str:
        return f"{(config.base_url or '').rstrip('/')}/chat/completions"

    @staticmethod
    def _headers(config: ProviderConfig) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        }

    @staticmethod
    def _message_content(data: Any) -> Optional[str]:
        """Extract choices[0].message.content, or None when absent."""
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None

    def build_messages(
        self,
        image: ImageSource,
        prompt: str,
        options: ProcessingOptions,
    ) -> List[Dict[str, Any]]:
        data_uri = f"data:{image.mime_type};base64,{encode_image(image)}"
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_instruction(prompt, options)},
                    {"type": "image_url", "image_url": {"url": data_uri}},
                ],
            }
        ]

    def _clean_reply(self, text: str) -> str:
        return strip_code_fences(text)

    async def _request_reply(
        self,
        image: ImageSource,
        prompt: str,
        config: ProviderConfig,
        options: ProcessingOptions,
    ) -> str:
        body = {
            "model": config.model_id,
            "messages": self.build_messages(image, prompt, options),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        data = await self._post_json(self._endpoint(config), self._headers(config), body)
        content = self._message_content(data)
        if not isinstance(content, str):
            raise ParseError("Chat completion has no message content", raw_text=str(data))
        return content

    async def complete_text(
        self,
        prompt: str,
        config: ProviderConfig,
        model: Optional[str] = None,
    ) -> str:
        body = {
            "model": model or config.model_id,
            "messages": [{"role": "user", "content": prompt}],
        }
        data = await self._post_json(self._endpoint(config), self._headers(config), body)
        content = self._message_content(data)
        return content.strip() if isinstance(content, str) else ""
