"""
VisionForge Data Models

Pydantic models for provider configuration, the image working set,
canonical analysis results, and batch statistics.
"""

import mimetypes
import secrets
import string
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ItemStatus = Literal["idle", "pending", "success", "error"]

# Option flag -> field map key, in the order keys are requested from providers
OPTION_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("include_confidence", "confidence"),
    ("include_tags", "tags"),
    ("include_ocr", "ocr_text"),
    ("include_colors", "colors"),
    ("include_category", "category"),
    ("include_reasoning", "reasoning"),
)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(length: int = 7) -> str:
    """Short random base36 id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


class ProviderKind(str, Enum):
    """Supported providers. Only GOOGLE speaks the structured-schema protocol."""

    GOOGLE = "google"
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    DOUBAO = "doubao"
    QWEN = "qwen"
    GLM = "glm"
    CLAUDE = "claude"
    CUSTOM = "custom"

    @property
    def is_openai_compatible(self) -> bool:
        return self is not ProviderKind.GOOGLE


class ProviderConfig(BaseModel):
    """Provider selection and credentials. Immutable for the duration of a run."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: ProviderKind
    api_key: str = ""
    base_url: Optional[str] = None
    model_id: str = ""


class ProcessingOptions(BaseModel):
    """Which optional outputs to request from the provider."""

    include_confidence: bool = False
    include_tags: bool = True
    include_ocr: bool = False
    include_colors: bool = False
    include_category: bool = False
    include_reasoning: bool = False
    include_stats: bool = Field(default=True, description="Export-only: emit the stats block")

    def requested_keys(self) -> List[str]:
        """Field map keys enabled by these options (caption excluded)."""
        return [key for flag, key in OPTION_FIELDS if getattr(self, flag)]


class ImageSource(BaseModel):
    """
    Binary image reference.

    Holds either an in-memory payload or a path read on demand.
    """

    filename: str
    mime_type: str = "application/octet-stream"
    path: Optional[str] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "ImageSource":
        path = Path(path)
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            mime_type=mime_type or "application/octet-stream",
            path=str(path.absolute()),
        )

    @classmethod
    def from_bytes(cls, data: bytes, filename: str, mime_type: Optional[str] = None) -> "ImageSource":
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(filename)
        return cls(
            filename=filename,
            mime_type=mime_type or "application/octet-stream",
            data=data,
        )

    def read(self) -> bytes:
        """Return the image bytes."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"Image source has no data: {self.filename}")
        return Path(self.path).read_bytes()


class CanonicalResult(BaseModel):
    """
    Provider-agnostic analysis of one image.

    Optional fields stay None unless the corresponding option was enabled
    and the provider returned a value for it.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    caption: str
    confidence: Optional[float] = None
    tags: Optional[List[str]] = None
    ocr_text: Optional[str] = None
    colors: Optional[List[str]] = None
    category: Optional[str] = None
    reasoning: Optional[str] = None
    embedding: Optional[List[float]] = None  # Never produced by providers, kept for export

    model_name: str
    inference_time_ms: int = Field(ge=0)
    timestamp: str  # ISO-8601

    def optional_fields(self) -> Dict[str, Any]:
        """Optional outputs that are set, keyed by field map name."""
        return {
            key: getattr(self, key)
            for _, key in OPTION_FIELDS
            if getattr(self, key) is not None
        }


class ImageItem(BaseModel):
    """
    An image in the working set with its processing status.

    result is set iff status == "success"; error_message only when "error".
    """

    id: str = Field(default_factory=generate_id)
    image: ImageSource
    status: ItemStatus = "idle"
    result: Optional[CanonicalResult] = None
    error_message: Optional[str] = None
    original_data: Optional[Dict[str, Any]] = None  # Preserved fields from a JSONL import

    @property
    def filename(self) -> str:
        return self.image.filename


class TagCount(BaseModel):
    name: str
    value: int


class ConfidenceBucket(BaseModel):
    range: str  # e.g. "80-100%"
    count: int


class TrendPoint(BaseModel):
    id: str
    value: float


class StatsSnapshot(BaseModel):
    """Aggregate metrics over successful items. Recomputed on demand."""

    total_processed: int = 0
    average_time_ms: float = 0.0
    tag_frequency: List[TagCount] = Field(default_factory=list)
    confidence_distribution: List[ConfidenceBucket] = Field(default_factory=list)
    confidence_trend: List[TrendPoint] = Field(default_factory=list)


class ProgressEvent(BaseModel):
    """Emitted by the batch orchestrator after each item completes."""

    item_id: str
    status: ItemStatus
    completed: int
    total: int
    error: Optional[str] = None  # Underlying adapter error, if the item failed

    @property
    def progress(self) -> float:
        return self.completed / self.total if self.total else 1.0
