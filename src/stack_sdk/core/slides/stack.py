"""The stack aggregate being edited."""

from typing import Optional

from pydantic import BaseModel, Field

from .collection import SlideSequence


class MusicRef(BaseModel):
    """Background track for the story."""
    url: str
    name: str = ""


class StackDraft(BaseModel):
    """Everything the user has entered for a stack, before serialization."""
    title: str = ""
    description: str = ""
    participants: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    music: Optional[MusicRef] = None
    sequence: SlideSequence = Field(default_factory=SlideSequence)

    @property
    def slides(self):
        return self.sequence.slides

    def add_participant(self, name: str) -> bool:
        name = name.strip()
        if not name or name in self.participants:
            return False
        self.participants.append(name)
        return True

    def add_hashtag(self, tag: str) -> bool:
        tag = tag.strip().lstrip("#")
        if not tag or tag in self.hashtags:
            return False
        self.hashtags.append(tag)
        return True
