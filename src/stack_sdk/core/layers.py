"""Layer composition for the slide being edited: CRUD, selection and z-order."""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .canvas import LayerKind, clamp_percent
from .slides import Slide, StickerLayer, TextLayer
from .slides.overlays import new_layer_id

logger = logging.getLogger("StoryStackMCP.core.layers")

CAPTION_FIELDS = {
    "text": "caption",
    "x": "caption_x",
    "y": "caption_y",
    "font_size": "caption_font_size",
    "color": "caption_color",
    "rotation": "caption_rotation",
}


# ── Selection ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NoSelection:
    kind = None


@dataclass(frozen=True)
class TextSelection:
    layer_id: str
    kind = LayerKind.TEXT


@dataclass(frozen=True)
class StickerSelection:
    layer_id: str
    kind = LayerKind.STICKER


@dataclass(frozen=True)
class CaptionSelection:
    kind = LayerKind.CAPTION


Selection = Union[NoSelection, TextSelection, StickerSelection, CaptionSelection]

NOTHING_SELECTED = NoSelection()


def render_order(slide: Slide) -> list[tuple[LayerKind, object]]:
    """Bottom-to-top paint order: caption, then text, then stickers."""
    layers: list[tuple[LayerKind, object]] = []
    if slide.caption:
        layers.append((LayerKind.CAPTION, slide))
    layers.extend((LayerKind.TEXT, l) for l in slide.text_layers)
    layers.extend((LayerKind.STICKER, l) for l in slide.sticker_layers)
    return layers


class LayerComposer:
    """Edits the overlay layers of one slide and owns the single selection."""

    def __init__(self, slide: Optional[Slide] = None):
        self._slide = slide
        self.selection: Selection = NOTHING_SELECTED

    @property
    def slide(self) -> Slide:
        if self._slide is None:
            raise RuntimeError("No slide is being edited")
        return self._slide

    @property
    def editing(self) -> Optional[Slide]:
        return self._slide

    def switch_slide(self, slide: Optional[Slide]):
        """Edit another slide. Selection never carries across slides."""
        self._slide = slide
        self.clear_selection()

    # ── Selection ───────────────────────────────────────────────────────

    def select_text(self, layer_id: str) -> Selection:
        self._find_text(layer_id)
        self.selection = TextSelection(layer_id)
        return self.selection

    def select_sticker(self, layer_id: str) -> Selection:
        self._find_sticker(layer_id)
        self.selection = StickerSelection(layer_id)
        return self.selection

    def select_caption(self) -> Selection:
        self.selection = CaptionSelection()
        return self.selection

    def clear_selection(self):
        self.selection = NOTHING_SELECTED

    def selected_layer(self) -> Optional[object]:
        """The model object behind the selection, or None."""
        sel = self.selection
        if isinstance(sel, NoSelection):
            return None
        if isinstance(sel, TextSelection):
            return self._get_text(sel.layer_id)
        if isinstance(sel, StickerSelection):
            return self._get_sticker(sel.layer_id)
        if isinstance(sel, CaptionSelection):
            return self.slide
        raise TypeError(f"Unknown selection {sel!r}")

    # ── CRUD ────────────────────────────────────────────────────────────

    def add_text(self, text: Optional[str] = None) -> TextLayer:
        layer = TextLayer(id=self._unique_id(), **({"text": text} if text is not None else {}))
        self.slide.text_layers.append(layer)
        self.selection = TextSelection(layer.id)
        return layer

    def add_sticker(self, glyph: str) -> StickerLayer:
        layer = StickerLayer(id=self._unique_id(), glyph=glyph)
        self.slide.sticker_layers.append(layer)
        self.selection = StickerSelection(layer.id)
        return layer

    def update(self, layer_id: str, **patch) -> TextLayer | StickerLayer:
        """Merge a partial change into a text or sticker layer.

        The whole patch is validated before any field is written, so a
        rejected patch leaves the layer unchanged.
        """
        if "id" in patch:
            raise ValueError("Layer id cannot be changed")
        layer = self._get_text(layer_id) or self._get_sticker(layer_id)
        if layer is None:
            raise KeyError(f"Layer {layer_id} not found")
        model = type(layer)
        for key in patch:
            if key not in model.model_fields:
                raise ValueError(f"Unknown field '{key}' for {model.__name__}")
        merged = model.model_validate({**layer.model_dump(), **patch})
        for key in patch:
            setattr(layer, key, getattr(merged, key))
        return layer

    def set_caption(self, **patch) -> Slide:
        """Patch caption fields using layer-style names (text, x, y, font_size, color, rotation).

        All-or-nothing, like ``update``.
        """
        slide = self.slide
        for key in patch:
            if key not in CAPTION_FIELDS:
                raise ValueError(f"Unknown caption field '{key}'")
        changes = {CAPTION_FIELDS[key]: value for key, value in patch.items()}
        merged = Slide.model_validate({**slide.model_dump(), **changes})
        for name in changes:
            setattr(slide, name, getattr(merged, name))
        return slide

    def move(self, kind: LayerKind | str, layer_id: str, x: float, y: float):
        """Commit a drag position for any layer kind."""
        kind = LayerKind(kind)
        x, y = clamp_percent(x), clamp_percent(y)
        if kind is LayerKind.CAPTION:
            self.slide.caption_x = x
            self.slide.caption_y = y
        else:
            self.update(layer_id, x=x, y=y)

    def remove(self, layer_id: str) -> bool:
        slide = self.slide
        before = len(slide.text_layers) + len(slide.sticker_layers)
        slide.text_layers = [l for l in slide.text_layers if l.id != layer_id]
        slide.sticker_layers = [l for l in slide.sticker_layers if l.id != layer_id]
        removed = len(slide.text_layers) + len(slide.sticker_layers) < before
        if not removed:
            logger.debug(f"Layer {layer_id} not found on slide {slide.id}")
        if getattr(self.selection, "layer_id", None) == layer_id:
            self.clear_selection()
        return removed

    # ── Helpers ─────────────────────────────────────────────────────────

    def _unique_id(self) -> str:
        existing = self.slide.layer_ids()
        while True:
            candidate = new_layer_id()
            if candidate not in existing:
                return candidate

    def _get_text(self, layer_id: str) -> Optional[TextLayer]:
        for l in self.slide.text_layers:
            if l.id == layer_id:
                return l
        return None

    def _get_sticker(self, layer_id: str) -> Optional[StickerLayer]:
        for l in self.slide.sticker_layers:
            if l.id == layer_id:
                return l
        return None

    def _find_text(self, layer_id: str) -> TextLayer:
        layer = self._get_text(layer_id)
        if layer is None:
            raise KeyError(f"Text layer {layer_id} not found")
        return layer

    def _find_sticker(self, layer_id: str) -> StickerLayer:
        layer = self._get_sticker(layer_id)
        if layer is None:
            raise KeyError(f"Sticker layer {layer_id} not found")
        return layer
