"""
Result Normalizer

Maps an adapter's field map into a CanonicalResult.
"""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import CanonicalResult, ImageSource, ProcessingOptions, ProviderConfig
from .providers.base import ParseError, ProviderAdapter

logger = logging.getLogger(__name__)

CAPTION_PLACEHOLDER = "No caption generated"

_LIST_FIELDS = ("tags", "colors")
_TEXT_FIELDS = ("ocr_text", "category", "reasoning")


def _coerce_list(key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ParseError(f"Field '{key}' should be a list, got {type(value).__name__}")


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool):
        raise ParseError("Field 'confidence' should be a number, got bool")
    try:
        confidence = float(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Field 'confidence' should be a number: {e}") from e
    if not math.isfinite(confidence):
        raise ParseError(f"Field 'confidence' should be finite, got {value!r}")
    return confidence


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize(
    field_map: Dict[str, Any],
    config: ProviderConfig,
    inference_time_ms: float,
    timestamp: Optional[str] = None,
) -> CanonicalResult:
    """
    Build a CanonicalResult from a field map.

    Values are type-coerced but not range-checked: a confidence of 1.7 is
    kept as 1.7.

    Args:
        field_map: Adapter output (caption plus requested optional keys)
        config: Provider configuration used for the call
        inference_time_ms: Duration measured around the adapter call
        timestamp: Completion time; defaults to now

    Raises:
        ParseError: If a field cannot be coerced to its expected type
    """
    caption = field_map.get("caption")
    caption = str(caption) if caption not in (None, "") else CAPTION_PLACEHOLDER

    fields: Dict[str, Any] = {}
    if field_map.get("confidence") is not None:
        fields["confidence"] = _coerce_confidence(field_map["confidence"])
    for key in _LIST_FIELDS:
        if field_map.get(key) is not None:
            fields[key] = _coerce_list(key, field_map[key])
    for key in _TEXT_FIELDS:
        if field_map.get(key) is not None:
            fields[key] = str(field_map[key])

    return CanonicalResult(
        caption=caption,
        model_name=config.model_id,
        inference_time_ms=max(0, round(inference_time_ms)),
        timestamp=timestamp or iso_timestamp(),
        **fields,
    )


async def timed_adapt(
    adapter: ProviderAdapter,
    image: ImageSource,
    prompt: str,
    config: ProviderConfig,
    options: ProcessingOptions,
) -> CanonicalResult:
    """
    Run one adapter call and normalize its reply.

    The inference time covers the whole adapter call, image encoding included.
    """
    start_time = time.perf_counter()
    field_map = await adapter.adapt(image, prompt, config, options)
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    result = normalize(field_map, config, elapsed_ms)
    logger.debug(f"Normalized {image.filename}: {result.inference_time_ms}ms, keys={sorted(field_map)}")
    return result
