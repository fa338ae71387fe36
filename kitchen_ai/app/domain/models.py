# kitchen_ai/app/domain/models.py
"""
Domain models for the recipe extraction client.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ThinkingPhase(str, Enum):
    """Progress phase reported while a streaming extraction runs."""
    IDLE = "idle"
    WATCHING = "watching"
    READING = "reading"
    BUILDING = "building"
    DONE = "done"


@dataclass(frozen=True)
class ContentBundle:
    """
    Every piece of evidence resolved for one recipe source.
    Only platform and source_url are mandatory; each evidence field is independent.
    """
    platform: str
    source_url: str

    video_local_path: Optional[str] = None
    caption_text: Optional[str] = None
    transcript: Optional[str] = None
    thumbnail_url: Optional[str] = None
    page_text: Optional[str] = None
    structured_data: Optional[str] = None  # schema.org JSON-LD
    title: Optional[str] = None
    author: Optional[str] = None


@dataclass(frozen=True)
class MediaPart:
    """A validated inline attachment. data is base64 text."""
    data: str
    mime_type: str

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


@dataclass(frozen=True)
class ExtractionContext:
    """Everything a single extraction call needs, derived from a ContentBundle."""
    platform: str
    context_lines: tuple[str, ...]
    media_parts: tuple[MediaPart, ...] = field(default_factory=tuple)
    used_video: bool = False
    caption_is_authoritative: bool = False

    @property
    def has_media(self) -> bool:
        return bool(self.media_parts)

    @property
    def context_text(self) -> str:
        return "\n\n".join(self.context_lines)

    @property
    def initial_phase(self) -> ThinkingPhase:
        return ThinkingPhase.READING if self.caption_is_authoritative else ThinkingPhase.WATCHING


@dataclass(frozen=True)
class ThinkingNote:
    text: str


@dataclass(frozen=True)
class PhaseChange:
    phase: ThinkingPhase


StreamEvent = Union[ThinkingNote, PhaseChange]
