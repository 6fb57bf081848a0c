"""
Dataset Export

JSONL import/export of canonical results and a plain-text statistics report.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from .models import ImageItem, ProcessingOptions, StatsSnapshot

logger = logging.getLogger(__name__)

# Keys probed, in order, for the image path of an imported record
IMAGE_PATH_KEYS = ("image", "file_name", "path")


class JsonlRecord(BaseModel):
    """One imported JSONL line."""

    image_path: str = ""
    original_data: Dict[str, Any] = Field(default_factory=dict)


def parse_jsonl(text: str) -> List[JsonlRecord]:
    """
    Parse JSONL text into records.

    Blank lines are skipped; malformed lines yield an empty record so that
    record positions still line up with the input.
    """
    records = []
    for line_no, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
        except ValueError as e:
            logger.warning(f"Skipping malformed JSONL line {line_no}: {e}")
            records.append(JsonlRecord())
            continue

        image_path = next((str(data[key]) for key in IMAGE_PATH_KEYS if data.get(key)), "")
        records.append(JsonlRecord(image_path=image_path, original_data=data))

    return records


def export_record(item: ImageItem, options: Optional[ProcessingOptions] = None) -> Dict[str, Any]:
    """
    Build the export object for one successful item.

    Imported fields are merged last and win over generated fields on collision.
    """
    options = options or ProcessingOptions()
    result = item.result

    record: Dict[str, Any] = {"image": item.filename, "prompt_output": result.caption}
    record.update(result.optional_fields())
    if result.embedding is not None:
        record["embedding"] = result.embedding
    if options.include_stats:
        record["stats"] = {"time_ms": result.inference_time_ms, "model": result.model_name}
    record.update(item.original_data or {})

    return record


def generate_jsonl_export(items: Iterable[ImageItem], options: Optional[ProcessingOptions] = None) -> str:
    """One JSON object per line for every successful item, in collection order."""
    lines = [
        json.dumps(export_record(item, options), ensure_ascii=False)
        for item in items
        if item.status == "success" and item.result is not None
    ]
    return "\n".join(lines)


def generate_stats_report(stats: StatsSnapshot, generated_at: Optional[datetime] = None) -> str:
    """
    Format statistics as a plain-text report.

    Sections:
    - Totals and average inference time
    - Confidence distribution
    - Tag frequency
    """
    generated_at = generated_at or datetime.now()

    sections = [
        "VisionForge Batch Processing Report",
        "===================================",
        f"Generated:       {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Total processed: {stats.total_processed}",
        f"Average time:    {stats.average_time_ms:.2f} ms",
        "",
        "-----------------------------------",
        "1. Confidence Distribution",
        "-----------------------------------",
    ]
    for bucket in stats.confidence_distribution:
        sections.append(f"  [{bucket.range:<8}]: {bucket.count} images")

    sections.extend([
        "",
        "-----------------------------------",
        "2. Top Tags",
        "-----------------------------------",
    ])
    if stats.tag_frequency:
        for tag in stats.tag_frequency:
            sections.append(f"- {tag.name}: {tag.value}")
    else:
        sections.append("_No tags_")

    return "\n".join(sections)
