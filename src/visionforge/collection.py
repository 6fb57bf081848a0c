"""
Image Working Set

Caller-owned, ordered collection of ImageItems keyed by id.
The batch orchestrator mutates items only through the mark_* methods,
which keep status, result and error message consistent.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from PIL import Image, UnidentifiedImageError

from .export import JsonlRecord
from .models import CanonicalResult, ImageItem, ImageSource, ItemStatus, generate_id

logger = logging.getLogger(__name__)


class ItemNotFoundError(KeyError):
    """Raised when an item id is not in the collection."""
    pass


class UnsupportedImageError(ValueError):
    """Raised when a file cannot be decoded as an image."""
    pass


class ItemCollection:
    """
    Ordered working set of images.

    Iteration follows insertion order. Ids are unique within the collection
    and never reused, even after removal.
    """

    def __init__(self, items: Optional[Iterable[ImageItem]] = None):
        self._items: Dict[str, ImageItem] = {}
        self._issued_ids = set()
        for item in items or []:
            self._insert(item)

    def __iter__(self) -> Iterator[ImageItem]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def _new_id(self) -> str:
        item_id = generate_id()
        while item_id in self._issued_ids:
            item_id = generate_id()
        return item_id

    def _insert(self, item: ImageItem) -> ImageItem:
        if item.id in self._issued_ids:
            raise ValueError(f"Duplicate item id: {item.id}")
        self._issued_ids.add(item.id)
        self._items[item.id] = item
        return item

    def get(self, item_id: str) -> ImageItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise ItemNotFoundError(item_id) from None

    def by_status(self, *statuses: ItemStatus) -> List[ImageItem]:
        """Items whose status is one of statuses, in collection order."""
        return [item for item in self._items.values() if item.status in statuses]

    def add(self, source: ImageSource) -> ImageItem:
        """Add an image in the idle state and return its item."""
        item = self._insert(ImageItem(id=self._new_id(), image=source))
        logger.debug(f"Added to working set: {source.filename} (ID: {item.id})")
        return item

    def add_path(self, image_path: Path) -> ImageItem:
        """
        Add an image file.

        The MIME type sent to providers comes from the decoded image format,
        not the file suffix.

        Raises:
            FileNotFoundError: If the file doesn't exist
            UnsupportedImageError: If the file is not a readable image
        """
        image_path = Path(image_path)
        if not image_path.is_file():
            raise FileNotFoundError(f"Image file not found: {image_path}")

        try:
            with Image.open(image_path) as img:
                mime_type = Image.MIME.get(img.format or "")
        except UnidentifiedImageError:
            raise UnsupportedImageError(f"Corrupted or unsupported image format: {image_path.name}")

        return self.add(ImageSource.from_path(image_path, mime_type=mime_type))

    def add_paths(self, paths: Iterable[Path]) -> List[ImageItem]:
        return [self.add_path(path) for path in paths]

    def add_directory(
        self,
        directory: Path,
        recursive: bool = True,
        extensions: Optional[List[str]] = None,
    ) -> List[ImageItem]:
        """
        Add all images from a directory.

        Args:
            directory: Directory to scan
            recursive: Whether to scan subdirectories
            extensions: File extensions to include (default: settings.image_extensions)

        Returns:
            Added items, sorted by path
        """
        from .config import settings

        extensions = [ext.lower().lstrip(".") for ext in (extensions or settings.image_extensions)]
        directory = Path(directory)

        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        pattern = "**/*" if recursive else "*"
        files = sorted(
            path for path in directory.glob(pattern)
            if path.is_file() and path.suffix.lower().lstrip(".") in extensions
        )

        items = []
        for image_file in files:
            try:
                items.append(self.add_path(image_file))
            except UnsupportedImageError as e:
                logger.warning(f"Skipping {image_file.name}: {e}")

        logger.info(f"Added {len(items)} images from {directory}")
        return items

    def remove(self, item_id: str) -> ImageItem:
        """Remove an item. Its id is not reused."""
        item = self.get(item_id)
        del self._items[item_id]
        return item

    def clear(self) -> None:
        self._items.clear()

    def attach_jsonl(self, records: Iterable[JsonlRecord]) -> int:
        """
        Attach imported JSONL records to items with a matching filename.

        Returns:
            Number of items that received original data
        """
        by_name = {}
        for record in records:
            if record.image_path:
                by_name[Path(record.image_path).name] = record.original_data

        matched = 0
        for item in self._items.values():
            data = by_name.get(item.filename)
            if data is not None:
                item.original_data = data
                matched += 1

        logger.info(f"Matched {matched} JSONL records to images")
        return matched

    # --- Status transitions ---

    def mark_pending(self, item_id: str) -> ImageItem:
        item = self.get(item_id)
        item.status = "pending"
        item.result = None
        item.error_message = None
        return item

    def mark_success(self, item_id: str, result: CanonicalResult) -> ImageItem:
        item = self.get(item_id)
        item.status = "success"
        item.result = result
        item.error_message = None
        return item

    def mark_failed(self, item_id: str, error_message: str) -> ImageItem:
        item = self.get(item_id)
        item.status = "error"
        item.result = None
        item.error_message = error_message
        return item
