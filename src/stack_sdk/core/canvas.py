"""Percentage-coordinate canvas and exclusive pointer drag sessions.

Layer positions are stored as percentages of the canvas container so the
same story renders identically at any size. A drag converts pixel deltas
from the pointer's start position into percentage deltas, adds them to the
layer's origin and clamps the result to the safe area.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

logger = logging.getLogger("StoryStackMCP.core.canvas")

# Layers never sit on the very edge of the canvas, where they would clip.
MIN_PERCENT = 2.0
MAX_PERCENT = 98.0


class LayerKind(str, Enum):
    TEXT = "text"
    STICKER = "sticker"
    CAPTION = "caption"


def clamp_percent(value: float) -> float:
    return max(MIN_PERCENT, min(MAX_PERCENT, float(value)))


@dataclass(frozen=True)
class Container:
    """Pixel size of the canvas the layers are positioned in."""
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Container must have a positive size, got {self.width}x{self.height}")


def to_percent_delta(container: Container, dx_px: float, dy_px: float) -> tuple[float, float]:
    return (dx_px / container.width) * 100, (dy_px / container.height) * 100


@dataclass(frozen=True)
class DragSession:
    """The one live drag owned by a pointer."""
    pointer_id: int
    entity_id: str
    kind: LayerKind
    origin_x: float
    origin_y: float
    start_x: float  # pointer position in pixels when the drag began
    start_y: float
    container: Container

    def position_at(self, pointer_x: float, pointer_y: float) -> tuple[float, float]:
        dx, dy = to_percent_delta(self.container, pointer_x - self.start_x, pointer_y - self.start_y)
        return clamp_percent(self.origin_x + dx), clamp_percent(self.origin_y + dy)


UpdateCallback = Callable[[str, LayerKind, float, float], None]


class DragEngine:
    """Tracks active drags, at most one per pointer and one per entity.

    The engine only computes positions; the owner receives them through
    ``on_update`` and decides when to commit them to the model.
    """

    def __init__(self, on_update: Optional[UpdateCallback] = None):
        self._on_update = on_update
        self._sessions: dict[int, DragSession] = {}

    @property
    def active(self) -> list[DragSession]:
        return list(self._sessions.values())

    def is_dragging(self, entity_id: Optional[str] = None) -> bool:
        if entity_id is None:
            return bool(self._sessions)
        return any(s.entity_id == entity_id for s in self._sessions.values())

    def begin(self, container: Container, entity_id: str, kind: LayerKind | str,
              origin_x: float, origin_y: float, pointer_id: int = 0,
              pointer_x: float = 0.0, pointer_y: float = 0.0) -> Optional[DragSession]:
        """Capture ``pointer_id`` for ``entity_id``. Returns None if the capture is refused."""
        if pointer_id in self._sessions:
            logger.debug(f"Pointer {pointer_id} already captured, ignoring drag of {entity_id}")
            return None
        if self.is_dragging(entity_id):
            logger.debug(f"Entity {entity_id} already dragged by another pointer, ignoring")
            return None

        session = DragSession(
            pointer_id=pointer_id,
            entity_id=entity_id,
            kind=LayerKind(kind),
            origin_x=clamp_percent(origin_x),
            origin_y=clamp_percent(origin_y),
            start_x=pointer_x,
            start_y=pointer_y,
            container=container,
        )
        self._sessions[pointer_id] = session
        return session

    def move(self, pointer_id: int, pointer_x: float, pointer_y: float) -> Optional[tuple[float, float]]:
        session = self._sessions.get(pointer_id)
        if session is None:
            return None
        x, y = session.position_at(pointer_x, pointer_y)
        if self._on_update:
            self._on_update(session.entity_id, session.kind, x, y)
        return x, y

    def end(self, pointer_id: int = 0) -> Optional[DragSession]:
        return self._sessions.pop(pointer_id, None)

    def cancel_all(self):
        self._sessions.clear()

    @contextmanager
    def drag(self, container: Container, entity_id: str, kind: LayerKind | str,
             origin_x: float, origin_y: float, pointer_id: int = 0,
             pointer_x: float = 0.0, pointer_y: float = 0.0) -> Iterator[Optional[DragSession]]:
        """Scoped capture: the pointer is released on every exit path.

        Yields None when the capture was refused; nothing is released then.
        """
        session = self.begin(container, entity_id, kind, origin_x, origin_y,
                             pointer_id, pointer_x, pointer_y)
        try:
            yield session
        finally:
            if session is not None:
                self.end(pointer_id)
