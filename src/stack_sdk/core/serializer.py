"""Packages a stack draft into the record handed to the storage collaborator."""

import logging
from typing import Optional, Protocol

from ..errors import StackValidationError
from .slides import MusicRef, Slide, SlideSequence, StackDraft

logger = logging.getLogger("StoryStackMCP.core.serializer")


class StackStore(Protocol):
    """The persistence collaborator: accepts a serialized stack."""

    def create(self, payload: dict) -> str: ...

    def update(self, stack_id: str, payload: dict) -> None: ...


def validate(draft: StackDraft) -> list[str]:
    problems = []
    if not draft.title.strip():
        problems.append("Title is required")
    if len(draft.sequence) == 0:
        problems.append("Add at least one photo or video")
    return problems


def serialize(draft: StackDraft) -> dict:
    """Build the persisted stack shape. Raises StackValidationError if not eligible."""
    problems = validate(draft)
    if problems:
        raise StackValidationError(problems)

    slides = draft.sequence.slides
    return {
        "title": draft.title.strip(),
        "description": draft.description,
        "participants": list(draft.participants),
        "hashtags": list(draft.hashtags),
        "music_url": draft.music.url if draft.music else None,
        "music_name": draft.music.name if draft.music else None,
        "cover_url": slides[0].url,
        "media_items": [s.to_record() for s in slides],
    }


def deserialize(payload: dict) -> StackDraft:
    """Rebuild an editable draft from a stored stack."""
    music: Optional[MusicRef] = None
    if payload.get("music_url"):
        music = MusicRef(url=payload["music_url"], name=payload.get("music_name") or "")

    return StackDraft(
        title=payload.get("title") or "",
        description=payload.get("description") or "",
        participants=list(payload.get("participants") or []),
        hashtags=list(payload.get("hashtags") or []),
        music=music,
        sequence=SlideSequence(
            slides=[Slide.model_validate(item) for item in payload.get("media_items") or []],
        ),
    )


def save_stack(draft: StackDraft, store: StackStore,
               stack_id: Optional[str] = None) -> Optional[str]:
    """Create or update a stack through ``store``.

    Returns the stack id (the new one on create). Validation errors
    propagate; a failing store is logged and reported as None.
    """
    payload = serialize(draft)
    try:
        if stack_id:
            store.update(stack_id, payload)
        else:
            stack_id = store.create(payload)
    except Exception as e:
        logger.error(f"Failed to save stack '{payload['title']}': {e}")
        return None
    return stack_id
