"""Slides package: public API re-exports."""

from .overlays import TextLayer, StickerLayer
from .slide import Slide, MediaKind, FitMode, DEFAULT_IMAGE_DURATION
from .collection import SlideSequence, ReorderGesture
from .stack import StackDraft, MusicRef

__all__ = [
    "Slide",
    "MediaKind",
    "FitMode",
    "DEFAULT_IMAGE_DURATION",
    "TextLayer",
    "StickerLayer",
    "SlideSequence",
    "ReorderGesture",
    "StackDraft",
    "MusicRef",
]
