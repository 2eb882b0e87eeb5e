"""Video trim window and the playback loop that stays inside it."""

import logging
from typing import Optional

from .slides import Slide

logger = logging.getLogger("StoryStackMCP.core.trim")


class TrimController:
    """Keeps ``0 <= start <= end <= total`` for one video slide.

    Until the media metadata is loaded the total duration is unknown and
    only the lower bound and ``start <= end`` are enforced.
    """

    def __init__(self, slide: Slide):
        if not slide.is_video:
            raise ValueError(f"Slide {slide.id} is not a video and cannot be trimmed")
        self.slide = slide

    @property
    def total(self) -> Optional[float]:
        return self.slide.total_video_duration

    def on_metadata_loaded(self, duration: float):
        if not duration or duration <= 0:
            return
        if duration != self.slide.total_video_duration:
            self.slide.total_video_duration = duration
        if self.slide.video_start_time is not None or self.slide.video_end_time is not None:
            self.set_window(self.slide.video_start_time or 0.0, self.slide.video_end_time)

    def window(self) -> tuple[float, Optional[float]]:
        start = self.slide.video_start_time or 0.0
        end = self.slide.video_end_time
        if end is None:
            end = self.total
        return start, end

    def set_window(self, start: float, end: Optional[float] = None) -> tuple[float, Optional[float]]:
        """Store the window, clamping each bound to the nearest valid value."""
        total = self.total
        start = max(0.0, float(start))
        if total is not None:
            start = min(start, total)

        if end is None:
            end = total
        else:
            end = max(0.0, float(end))
            if total is not None:
                end = min(end, total)
            if end < start:
                logger.debug(f"Trim end {end} before start {start}, clamping to start")
                end = start

        self.slide.video_start_time = start
        self.slide.video_end_time = end
        return start, end

    def reset(self):
        self.slide.video_start_time = None
        self.slide.video_end_time = None

    def on_time_update(self, current_time: float, media_duration: Optional[float] = None) -> Optional[float]:
        """Return the time to seek to, or None to let playback continue."""
        start, end = self.window()
        if end is None:
            end = media_duration
        if end is not None and current_time >= end:
            return start
        if current_time < start:
            return start
        return None
