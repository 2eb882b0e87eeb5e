"""Ordered slide sequence with an editing cursor and drag-to-reorder."""

import logging
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .slide import Slide

logger = logging.getLogger("StoryStackMCP.core.slides")


class SlideSequence(BaseModel):
    """Slides in story order plus the index of the slide being edited."""
    slides: list[Slide] = Field(default_factory=list)
    editing_index: int = 0

    def __len__(self) -> int:
        return len(self.slides)

    def __getitem__(self, index: int) -> Slide:
        return self.slides[index]

    def get(self, slide_id: str) -> Optional[Slide]:
        for s in self.slides:
            if s.id == slide_id:
                return s
        return None

    def index_of(self, slide_id: str) -> int:
        for i, s in enumerate(self.slides):
            if s.id == slide_id:
                return i
        raise KeyError(slide_id)

    def current(self) -> Optional[Slide]:
        if 0 <= self.editing_index < len(self.slides):
            return self.slides[self.editing_index]
        return None

    def append(self, slides: Iterable[Slide]) -> list[Slide]:
        added = list(slides)
        self.slides.extend(added)
        return added

    def remove(self, index: int) -> Slide:
        self._check_index(index)
        removed = self.slides.pop(index)
        if self.editing_index >= index and self.editing_index > 0:
            self.editing_index -= 1
        return removed

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move one slide, keeping the relative order of all others."""
        self._check_index(from_index)
        self._check_index(to_index)
        if from_index == to_index:
            return
        moved = self.slides.pop(from_index)
        self.slides.insert(to_index, moved)

    def select(self, index: int) -> int:
        if not self.slides:
            self.editing_index = 0
        else:
            self.editing_index = max(0, min(len(self.slides) - 1, index))
        return self.editing_index

    def next(self) -> int:
        return self.select(self.editing_index + 1)

    def previous(self) -> int:
        return self.select(self.editing_index - 1)

    def _check_index(self, index: int):
        if not 0 <= index < len(self.slides):
            raise IndexError(f"Slide index {index} out of range (0..{len(self.slides) - 1})")


class ReorderGesture:
    """Reorders a sequence while a slide is dragged across its siblings.

    Each boundary crossing performs exactly one move; hovering over the
    slot the dragged slide already occupies does nothing.
    """

    def __init__(self, sequence: SlideSequence):
        self._sequence = sequence
        self.pivot: Optional[int] = None
        self.moves = 0

    @property
    def active(self) -> bool:
        return self.pivot is not None

    def start(self, index: int):
        self._sequence._check_index(index)
        self.pivot = index
        self.moves = 0

    def over(self, index: int) -> bool:
        if self.pivot is None or self.pivot == index:
            return False
        source = self.pivot
        # Pivot moves first so a repeated event over the same slot is a no-op
        self.pivot = index
        self._sequence.reorder(source, index)
        self.moves += 1
        return True

    def end(self):
        logger.debug(f"Reorder gesture finished after {self.moves} moves")
        self.pivot = None
