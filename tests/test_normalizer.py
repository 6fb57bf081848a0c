"""
Unit tests for the result normalizer.
"""

import asyncio
import itertools
from unittest.mock import patch

import pytest

from visionforge.models import OPTION_FIELDS, ProcessingOptions
from visionforge.normalizer import CAPTION_PLACEHOLDER, iso_timestamp, normalize, timed_adapt
from visionforge.providers import ParseError, ProviderAdapter

FULL_REPLY = {
    "caption": "a cat on a sofa",
    "confidence": 0.8,
    "tags": ["cat", "sofa"],
    "ocr_text": "",
    "colors": ["#000000"],
    "category": "Animal",
    "reasoning": "visible fur",
}


class TestNormalize:
    """Tests for field map -> CanonicalResult mapping."""

    def test_copies_fields(self, gemini_config):
        result = normalize(FULL_REPLY, gemini_config, 123.4, timestamp="2026-01-01T00:00:00.000Z")

        assert result.caption == "a cat on a sofa"
        assert result.confidence == 0.8
        assert result.tags == ["cat", "sofa"]
        assert result.ocr_text == ""
        assert result.colors == ["#000000"]
        assert result.category == "Animal"
        assert result.reasoning == "visible fur"
        assert result.model_name == "gemini-2.5-flash"
        assert result.inference_time_ms == 123
        assert result.timestamp == "2026-01-01T00:00:00.000Z"

    def test_missing_caption_uses_placeholder(self, gemini_config):
        assert normalize({}, gemini_config, 1).caption == CAPTION_PLACEHOLDER

    def test_empty_caption_uses_placeholder(self, gemini_config):
        assert normalize({"caption": ""}, gemini_config, 1).caption == CAPTION_PLACEHOLDER

    def test_absent_optional_fields_stay_unset(self, gemini_config):
        result = normalize({"caption": "x"}, gemini_config, 1)
        assert result.optional_fields() == {}
        assert result.embedding is None

    def test_out_of_range_confidence_passes_through(self, gemini_config):
        """Confidence is not clamped."""
        assert normalize({"caption": "x", "confidence": 1.7}, gemini_config, 1).confidence == 1.7

    def test_coerces_types(self, gemini_config):
        result = normalize(
            {"caption": 42, "confidence": "0.5", "tags": "single", "category": 3},
            gemini_config,
            1,
        )
        assert result.caption == "42"
        assert result.confidence == 0.5
        assert result.tags == ["single"]
        assert result.category == "3"

    def test_uncoercible_confidence_raises_parse_error(self, gemini_config):
        with pytest.raises(ParseError):
            normalize({"caption": "x", "confidence": "high"}, gemini_config, 1)

    @pytest.mark.parametrize("value", ["NaN", "inf", "-Infinity", float("nan")])
    def test_non_finite_confidence_raises_parse_error(self, gemini_config, value):
        """Non-finite confidence would escape every histogram bucket."""
        with pytest.raises(ParseError):
            normalize({"caption": "x", "confidence": value}, gemini_config, 1)

    def test_uncoercible_tags_raise_parse_error(self, gemini_config):
        with pytest.raises(ParseError):
            normalize({"caption": "x", "tags": {"a": 1}}, gemini_config, 1)

    def test_rounds_and_clamps_duration(self, gemini_config):
        assert normalize({}, gemini_config, 99.6).inference_time_ms == 100
        assert normalize({}, gemini_config, -0.4).inference_time_ms == 0

    def test_timestamp_is_iso_utc(self, gemini_config):
        stamp = normalize({}, gemini_config, 1).timestamp
        assert stamp.endswith("Z")
        assert "T" in stamp

    def test_iso_timestamp_format(self):
        from datetime import datetime, timezone
        moment = datetime(2026, 10, 19, 8, 30, 0, 250000, tzinfo=timezone.utc)
        assert iso_timestamp(moment) == "2026-10-19T08:30:00.250Z"


class EchoAdapter(ProviderAdapter):
    """Adapter that answers with the full reply, restricted to requested keys."""

    async def _request_reply(self, image, prompt, config, options):
        import json
        return json.dumps(FULL_REPLY)

    async def complete_text(self, prompt, config, model=None):
        return ""


class TestOptionKeys:
    """The normalized optional keys must equal the enabled flags' keys."""

    @pytest.mark.parametrize("flags", list(itertools.product([False, True], repeat=len(OPTION_FIELDS))))
    def test_keys_match_enabled_flags(self, flags, image, gemini_config):
        options = ProcessingOptions(**{flag: on for (flag, _), on in zip(OPTION_FIELDS, flags)})
        expected = {key for (_, key), on in zip(OPTION_FIELDS, flags) if on}

        result = asyncio.run(timed_adapt(EchoAdapter(), image, "p", gemini_config, options))

        assert set(result.optional_fields()) == expected
        assert result.caption == "a cat on a sofa"


class TestTimedAdapt:
    """Tests for duration measurement around the adapter call."""

    def test_measures_duration(self, image, gemini_config):
        with patch("visionforge.normalizer.time") as mock_time:
            mock_time.perf_counter.side_effect = [10.0, 10.25]
            result = asyncio.run(timed_adapt(EchoAdapter(), image, "p", gemini_config, ProcessingOptions()))

        assert result.inference_time_ms == 250
        assert result.model_name == "gemini-2.5-flash"
