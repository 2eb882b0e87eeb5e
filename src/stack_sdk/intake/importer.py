"""Turns device files, library records and picked provider items into slides."""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from ..core.slides import MediaKind, Slide
from ..errors import UploadFailed
from ..providers.photos import MediaItem, PhotosClient
from ..providers.urls import display_url

logger = logging.getLogger("StoryStackMCP.intake.importer")

VIDEO_EXTENSIONS = re.compile(r"\.(mp4|mov|webm|mkv|avi)(\?.*)?$", re.IGNORECASE)

ProgressCallback = Callable[[str, int], None]


def looks_like_video(item: dict) -> bool:
    """Best-effort video detection across library and provider records."""
    if (item.get("type") or "").lower() == "video":
        return True
    mime_types = [item.get("mimeType"), item.get("mime_type"), (item.get("mediaFile") or {}).get("mimeType")]
    if any(m and m.lower().startswith("video") for m in mime_types):
        return True
    if (item.get("mediaMetadata") or {}).get("video"):
        return True
    return any(
        VIDEO_EXTENSIONS.search(item.get(key) or "")
        for key in ("url", "filename")
    )


def slide_from_library(item: dict) -> Slide:
    """A slide for an item picked from the internal media library.

    Raises ValueError for a record without a usable url. Numeric ids are
    kept as strings.
    """
    if not isinstance(item, dict):
        raise ValueError(f"Library item must be an object, got {type(item).__name__}")
    url = item.get("url")
    if not isinstance(url, str) or not url:
        raise ValueError(f"Library item {item.get('id')!r} has no url")
    kind = MediaKind.VIDEO if looks_like_video(item) else MediaKind.IMAGE
    item_id = item.get("id")
    return Slide.create(
        url=url,
        kind=kind,
        filename=item.get("filename") or "",
        slide_id=str(item_id) if item_id is not None else None,
    )


def slides_from_library(items: list[dict]) -> list[Slide]:
    return [slide_from_library(item) for item in items]


def slide_from_provider(item: MediaItem) -> Slide:
    """A slide that stays linked to its provider item."""
    kind = MediaKind.VIDEO if item.is_video else MediaKind.IMAGE
    return Slide.create(
        url=display_url(item.base_url, item.is_video),
        kind=kind,
        filename=item.filename or f"gp_{item.id}",
        slide_id=item.id,
        google_photo_id=item.id,
    )


@dataclass
class ImportReport:
    """Outcome of a batch: partial success is a valid end state."""
    slides: list[Slide] = field(default_factory=list)
    failures: list[UploadFailed] = field(default_factory=list)

    @property
    def failed_filenames(self) -> list[str]:
        return [f.filename for f in self.failures]

    @property
    def ok(self) -> bool:
        return not self.failures


class MediaImporter:
    """Uploads device files to the provider one at a time.

    Files go sequentially so per-filename progress stays ordered. A failed
    file is recorded and the batch moves on; earlier successes are kept.
    """

    def __init__(self, client: PhotosClient, on_progress: Optional[ProgressCallback] = None):
        self._client = client
        self._on_progress = on_progress
        self.progress: dict[str, int] = {}

    def _report(self, filename: str, percent: int):
        self.progress[filename] = percent
        if self._on_progress:
            self._on_progress(filename, percent)

    def upload_files(self, paths: list[Path]) -> ImportReport:
        report = ImportReport()
        for path in paths:
            path = Path(path)
            filename = path.name
            self._report(filename, 0)
            try:
                self._report(filename, 20)
                item = self._client.upload_media(path, filename, description=filename)
            except UploadFailed as e:
                logger.warning(f"Upload failed for {filename}: {e}")
                report.failures.append(e)
                self.progress.pop(filename, None)
                continue
            except OSError as e:
                logger.warning(f"Could not read {filename}: {e}")
                report.failures.append(UploadFailed(filename, str(e)))
                self.progress.pop(filename, None)
                continue

            is_video = item.is_video or bool(VIDEO_EXTENSIONS.search(filename))
            report.slides.append(Slide.create(
                url=display_url(item.base_url, is_video),
                kind=MediaKind.VIDEO if is_video else MediaKind.IMAGE,
                filename=filename,
                slide_id=f"gp-{int(time.time() * 1000)}-{len(report.slides)}",
                google_photo_id=item.id,
            ))
            self._report(filename, 100)
            self.progress.pop(filename, None)

        logger.info(f"Upload batch finished: {len(report.slides)} ok, {len(report.failures)} failed")
        return report
