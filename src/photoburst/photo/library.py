"""
Photo library with background extraction.

add_photo() returns a handle immediately and submits palette/mosaic
extraction to a worker pool. Workers only compute; the finished result
is applied to the handle by poll(), which the tick calls once per frame.
That keeps every handle single-writer.
"""

import enum
import itertools
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from photoburst.config import PhotoConfig
from photoburst.photo.extractor import ExtractionResult, Mosaic, PhotoMosaicExtractor

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


class PhotoStatus(enum.Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    READY = "READY"


@dataclass
class PhotoHandle:
    id: int
    source_id: str
    image: Any
    palette: Optional[np.ndarray] = None
    mosaic: Optional[Mosaic] = None
    visible: bool = True
    status: PhotoStatus = PhotoStatus.NEW

    @property
    def is_ready(self) -> bool:
        return self.status is PhotoStatus.READY


def scan_image_directory(directory: Union[str, Path]) -> List[Path]:
    """All supported images under `directory`, recursively, sorted by relative path."""
    root = Path(directory)
    found = [
        p for p in root.rglob("*")
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    ]
    return sorted(found, key=lambda p: p.relative_to(root).as_posix())


class PhotoLibrary:
    """
    Holds photos and their extraction results.

    Args:
        config: Extraction and worker settings.
        rng: Seeds per-task generators so results are reproducible.
        executor: Optional shared executor; one is created (and owned) otherwise.
    """

    def __init__(
        self,
        config: Optional[PhotoConfig] = None,
        rng: Optional[np.random.Generator] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.cfg = config or PhotoConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.extractor = PhotoMosaicExtractor(self.cfg)
        self.photos: List[PhotoHandle] = []

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, self.cfg.workers),
            thread_name_prefix="photoburst-photo",
        )
        self._ids = itertools.count()
        self._in_flight: Dict[int, Future] = {}

    def add_photo(self, raw_image: Any, source_id: Optional[str] = None) -> PhotoHandle:
        """Register a photo and queue its extraction."""
        photo_id = next(self._ids)
        handle = PhotoHandle(
            id=photo_id,
            source_id=str(source_id) if source_id is not None else f"photo-{photo_id}",
            image=raw_image,
        )
        self.photos.append(handle)
        self._queue(handle)
        logger.info(f"Queued photo {handle.id} ({handle.source_id})")
        return handle

    def _queue(self, handle: PhotoHandle):
        # Each task gets its own generator; Generators are not thread-safe
        task_rng = np.random.default_rng(int(self.rng.integers(1 << 63)))
        handle.status = PhotoStatus.PROCESSING
        self._in_flight[handle.id] = self._executor.submit(
            self.extractor.process, handle.image, task_rng
        )

    def poll(self) -> List[PhotoHandle]:
        """
        Apply finished extractions. Call from the tick only.

        Returns:
            Handles that became READY during this call.
        """
        finished: List[PhotoHandle] = []
        for photo_id, future in list(self._in_flight.items()):
            if not future.done():
                continue
            del self._in_flight[photo_id]
            handle = self.get_by_id(photo_id, include_hidden=True)
            self._apply(handle, future)
            finished.append(handle)
        return finished

    def _apply(self, handle: PhotoHandle, future: Future):
        try:
            result: ExtractionResult = future.result()
        except Exception:
            # process() handles bad image data; anything here is a bug worth seeing
            logger.exception(f"Extraction crashed for photo {handle.id}")
            result = ExtractionResult(palette=None, mosaic=None)

        handle.palette = result.palette
        handle.mosaic = result.mosaic
        handle.status = PhotoStatus.READY

        points = len(result.mosaic) if result.mosaic is not None else 0
        colors = len(result.palette) if result.palette is not None else 0
        logger.info(f"Photo {handle.id} ready: {colors} colors, {points} mosaic points")

    def wait(self, timeout: Optional[float] = None) -> List[PhotoHandle]:
        """Block until queued extractions finish, then poll(). Not for the tick."""
        for future in list(self._in_flight.values()):
            future.exception(timeout=timeout)
        return self.poll()

    @property
    def pending_count(self) -> int:
        return len(self._in_flight)

    def remove_photo(self, photo_id: int):
        """Hide a photo from selection; running extraction still completes."""
        handle = self.get_by_id(photo_id)
        if handle is None:
            return
        handle.visible = False
        logger.info(f"Photo {photo_id} hidden")

    def visible_photos(self) -> List[PhotoHandle]:
        return [p for p in self.photos if p.visible]

    def get_by_id(self, photo_id: int, include_hidden: bool = False) -> Optional[PhotoHandle]:
        for p in self.photos:
            if p.id == photo_id and (include_hidden or p.visible):
                return p
        return None

    def get_selected_or_random(self, selected_id: Optional[int] = None) -> Optional[PhotoHandle]:
        """The selected visible photo, else a random visible one, else None."""
        visible = self.visible_photos()
        if not visible:
            return None
        if selected_id is not None:
            for p in visible:
                if p.id == selected_id:
                    return p
        return visible[int(self.rng.integers(len(visible)))]

    def load_directory(self, directory: Union[str, Path]) -> List[PhotoHandle]:
        """Queue every supported image found under `directory`."""
        paths = scan_image_directory(directory)
        handles = [self.add_photo(p, source_id=p.as_posix()) for p in paths]
        logger.info(f"Loaded {len(handles)} photos from {directory}")
        return handles

    def shutdown(self, wait: bool = True):
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
