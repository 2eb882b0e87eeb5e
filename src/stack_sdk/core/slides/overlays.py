"""Overlay layers drawn on top of a slide: positioned text and stickers."""

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..canvas import clamp_percent

DEFAULT_TEXT = "New text"
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_FONT_SIZE = 28
DEFAULT_STICKER_SIZE = 60  # px
DEFAULT_COLOR = "#ffffff"


def new_layer_id() -> str:
    return uuid.uuid4().hex


class OverlayModel(BaseModel):
    """Base for models stored in the renderer's camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class TextLayer(OverlayModel):
    """Free text placed on a slide. x and y are percentages of the canvas."""
    id: str = Field(default_factory=new_layer_id)
    text: str = DEFAULT_TEXT
    x: float = 50.0
    y: float = 50.0
    font_size: int = DEFAULT_FONT_SIZE
    font_family: str = DEFAULT_FONT_FAMILY
    color: str = DEFAULT_COLOR
    bold: bool = True
    rotation: float = 0.0  # degrees

    @field_validator("x", "y")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp_percent(v)


class StickerLayer(OverlayModel):
    """An emoji glyph placed on a slide."""
    id: str = Field(default_factory=new_layer_id)
    glyph: str = Field(alias="emoji")
    x: float = 50.0
    y: float = 50.0
    size: int = DEFAULT_STICKER_SIZE

    @field_validator("x", "y")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp_percent(v)
