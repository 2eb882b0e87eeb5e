"""Slide data model."""

import uuid
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from ..canvas import clamp_percent
from .overlays import DEFAULT_COLOR, OverlayModel, StickerLayer, TextLayer

DEFAULT_IMAGE_DURATION = 5.0  # seconds an image stays on screen


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class FitMode(str, Enum):
    CONTAIN = "contain"
    COVER = "cover"


class Slide(OverlayModel):
    """A single media entry in a stack, with its caption and overlay layers.

    Video-only fields stay unset for images. ``google_photo_id`` ties a
    synced slide to its remote object for the life of the stack.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    url: str
    type: MediaKind = MediaKind.IMAGE
    filename: str = ""

    caption: str = ""
    caption_x: float = 50.0
    caption_y: float = 85.0
    caption_font_size: int = 20
    caption_color: str = DEFAULT_COLOR
    caption_rotation: float = 0.0

    text_layers: list[TextLayer] = Field(default_factory=list)
    sticker_layers: list[StickerLayer] = Field(default_factory=list)

    duration: Optional[float] = None
    crop_mode: FitMode = FitMode.CONTAIN
    video_start_time: Optional[float] = None
    video_end_time: Optional[float] = None
    total_video_duration: Optional[float] = None

    google_photo_id: Optional[str] = None
    is_synced_to_google: bool = False

    @field_validator("caption_x", "caption_y")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp_percent(v)

    @classmethod
    def create(cls, url: str, kind: MediaKind | str, filename: str = "",
               slide_id: Optional[str] = None,
               google_photo_id: Optional[str] = None) -> "Slide":
        """Build a freshly imported slide with editor defaults."""
        kind = MediaKind(kind)
        data = dict(
            url=url,
            type=kind,
            filename=filename,
            duration=DEFAULT_IMAGE_DURATION if kind is MediaKind.IMAGE else None,
            google_photo_id=google_photo_id,
            is_synced_to_google=bool(google_photo_id),
        )
        if slide_id:
            data["id"] = slide_id
        return cls(**data)

    @property
    def is_video(self) -> bool:
        return self.type is MediaKind.VIDEO

    def layer_ids(self) -> set[str]:
        return {l.id for l in self.text_layers} | {l.id for l in self.sticker_layers}

    def to_record(self) -> dict:
        """The camelCase record stored in ``media_items``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
