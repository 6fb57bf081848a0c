"""
Batch Statistics

Aggregates canonical results of successful items into a StatsSnapshot.
"""

from statistics import mean
from typing import Dict, Iterable, List

from .models import ConfidenceBucket, ImageItem, StatsSnapshot, TagCount, TrendPoint

# Histogram edges; buckets are [lower, upper) except the last, which also takes 1.0
CONFIDENCE_BINS = (0.0, 0.2, 0.4, 0.6, 0.8, 1.0)


def _bucket_label(lower: float, upper: float) -> str:
    return f"{lower * 100:.0f}-{upper * 100:.0f}%"


def confidence_histogram(confidences: List[float]) -> List[ConfidenceBucket]:
    """
    Count confidences into the fixed five buckets.

    Values outside [0, 1] are not counted anywhere.
    """
    buckets = []
    last = len(CONFIDENCE_BINS) - 2
    for idx, (lower, upper) in enumerate(zip(CONFIDENCE_BINS, CONFIDENCE_BINS[1:])):
        count = sum(
            1 for c in confidences
            if lower <= c < upper or (idx == last and c == upper)
        )
        buckets.append(ConfidenceBucket(range=_bucket_label(lower, upper), count=count))
    return buckets


def compute_stats(items: Iterable[ImageItem]) -> StatsSnapshot:
    """
    Compute statistics over the successful items of a collection.

    Items in idle, pending or error state are ignored. A missing confidence
    counts as 0 in both the histogram and the trend.
    """
    processed = [item for item in items if item.status == "success" and item.result is not None]
    if not processed:
        return StatsSnapshot(confidence_distribution=confidence_histogram([]))

    tag_freq: Dict[str, int] = {}
    for item in processed:
        for tag in item.result.tags or []:
            tag_freq[tag] = tag_freq.get(tag, 0) + 1

    confidences = [item.result.confidence or 0.0 for item in processed]

    # sorted() is stable, so ties keep collection order
    trend = sorted(
        (TrendPoint(id=item.id, value=conf) for item, conf in zip(processed, confidences)),
        key=lambda point: point.value,
        reverse=True,
    )

    return StatsSnapshot(
        total_processed=len(processed),
        average_time_ms=mean(item.result.inference_time_ms for item in processed),
        tag_frequency=[TagCount(name=name, value=value) for name, value in tag_freq.items()],
        confidence_distribution=confidence_histogram(confidences),
        confidence_trend=trend,
    )
