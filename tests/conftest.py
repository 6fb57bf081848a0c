"""
Shared fixtures for VisionForge tests.

HTTP is faked with httpx.MockTransport, so no provider is contacted.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from visionforge.models import ImageSource, ProcessingOptions, ProviderConfig, ProviderKind

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


def chat_response(content: str, status_code: int = 200) -> httpx.Response:
    """OpenAI-style chat completion response."""
    return httpx.Response(status_code, json={"choices": [{"message": {"content": content}}]})


def gemini_response(text: str, status_code: int = 200) -> httpx.Response:
    """Gemini generateContent response with a single text part."""
    return httpx.Response(
        status_code,
        json={"candidates": [{"content": {"parts": [{"text": text}]}}]},
    )


@pytest.fixture
def image() -> ImageSource:
    return ImageSource.from_bytes(PNG_BYTES, "cat.png")


@pytest.fixture
def gemini_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderKind.GOOGLE,
        api_key="g-key",
        model_id="gemini-2.5-flash",
    )


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderKind.OPENAI,
        api_key="sk-test",
        base_url="https://api.example.com/v1/",
        model_id="gpt-4o",
    )


@pytest.fixture
def all_options() -> ProcessingOptions:
    return ProcessingOptions(
        include_confidence=True,
        include_tags=True,
        include_ocr=True,
        include_colors=True,
        include_category=True,
        include_reasoning=True,
    )
