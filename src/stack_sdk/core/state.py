"""Editor session state with undo support and annotation palettes."""

from contextlib import contextmanager
from typing import Iterator, Optional

from pydantic import BaseModel, Field, PrivateAttr

from .layers import LayerComposer
from .slides import MusicRef, Slide, StackDraft
from .trim import TrimController

# Palettes offered by the annotation step
STICKERS: list[str] = [
    "❤️", "⭐", "🌟", "🎉", "🥰", "🌸", "🎶", "🌈",
    "🏡", "👨‍👩‍👧‍👦", "📸", "🎬", "🔥", "🌺", "💫", "🦋",
]
FONTS: list[str] = ["Inter", "Georgia", "Courier New", "cursive"]
COLORS: list[str] = ["#ffffff", "#000000", "#f43f5e", "#f59e0b", "#10b981", "#3b82f6", "#8b5cf6"]

MAX_UNDO = 50


class UndoEntry(BaseModel):
    """A snapshot of the draft for undo."""
    description: str
    draft_json: str  # JSON-serialized StackDraft


class EditorState(BaseModel):
    """The stack being created or edited, and which slide is under the pen."""
    draft: StackDraft = Field(default_factory=StackDraft)
    stack_id: Optional[str] = None  # set when editing a saved stack
    undo_stack: list[UndoEntry] = Field(default_factory=list)

    _composer: LayerComposer = PrivateAttr(default_factory=LayerComposer)

    def model_post_init(self, __context) -> None:
        self._composer.switch_slide(self.draft.sequence.current())

    @property
    def composer(self) -> LayerComposer:
        return self._composer

    @property
    def current_slide(self) -> Optional[Slide]:
        return self.draft.sequence.current()

    # ── Slides ──────────────────────────────────────────────────────────

    def add_slides(self, slides: list[Slide]) -> list[Slide]:
        added = self.draft.sequence.append(slides)
        if self._composer.editing is None:
            self._composer.switch_slide(self.current_slide)
        return added

    def edit_slide(self, index: int) -> Optional[Slide]:
        """Switch the edited slide. Always clears the layer selection."""
        self.draft.sequence.select(index)
        self._composer.switch_slide(self.current_slide)
        return self.current_slide

    def remove_slide(self, index: int) -> Slide:
        removed = self.draft.sequence.remove(index)
        self._composer.switch_slide(self.current_slide)
        return removed

    def reorder_slides(self, from_index: int, to_index: int):
        editing = self.current_slide
        self.draft.sequence.reorder(from_index, to_index)
        # Keep editing the same slide wherever it moved to
        if editing is not None:
            self.draft.sequence.editing_index = self.draft.sequence.index_of(editing.id)

    def trim(self, slide: Optional[Slide] = None) -> TrimController:
        slide = slide or self.current_slide
        if slide is None:
            raise RuntimeError("No slide is being edited")
        return TrimController(slide)

    # ── Stack details ───────────────────────────────────────────────────

    def add_participant(self, name: str) -> bool:
        return self.draft.add_participant(name)

    def add_hashtag(self, tag: str) -> bool:
        return self.draft.add_hashtag(tag)

    def set_music(self, url: Optional[str], name: str = ""):
        self.draft.music = MusicRef(url=url, name=name) if url else None

    def reset(self):
        self.draft = StackDraft()
        self.stack_id = None
        self.undo_stack = []
        self._composer.switch_slide(None)

    # ── Undo ────────────────────────────────────────────────────────────

    def checkpoint(self, description: str):
        """Save current draft to undo stack."""
        entry = UndoEntry(
            description=description,
            draft_json=self.draft.model_dump_json(),
        )
        self.undo_stack.append(entry)
        if len(self.undo_stack) > MAX_UNDO:
            self.undo_stack = self.undo_stack[-MAX_UNDO:]

    def discard_checkpoint(self):
        """Drop the newest checkpoint without restoring it."""
        if self.undo_stack:
            self.undo_stack.pop()

    @contextmanager
    def checkpointed(self, description: str) -> Iterator[None]:
        """Checkpoint around an edit; the entry is dropped if the edit raises."""
        self.checkpoint(description)
        try:
            yield
        except Exception:
            self.discard_checkpoint()
            raise

    def undo(self) -> Optional[str]:
        """Revert to the last checkpoint. Returns description of what was undone."""
        if not self.undo_stack:
            return None
        entry = self.undo_stack.pop()
        self.draft = StackDraft.model_validate_json(entry.draft_json)
        self._composer.switch_slide(self.current_slide)
        return entry.description
