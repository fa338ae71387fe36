from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from kitchen_ai.app.domain.models import ContentBundle, ExtractionContext, MediaPart
from .media import MediaEncoder

logger = logging.getLogger(__name__)

DEFAULT_MAX_INLINE_VIDEO_BYTES = 20 * 1024 * 1024
DEFAULT_TRANSCRIPT_MAX_CHARS = 12_000
DEFAULT_PAGE_TEXT_MAX_CHARS = 10_000
CAPTION_MIN_CHARS = 80

INGREDIENT_PATTERNS = (
    re.compile(
        r"\b\d+\s*(cup|cups|tbsp|tsp|tablespoon|teaspoon|oz|ounce|lb|pound|g|gram|kg|ml|liter|litre"
        r"|clove|bunch|pinch|dash|can|stick|slice|piece)",
        re.IGNORECASE,
    ),
    re.compile(r"\bingredients?\b", re.IGNORECASE),
    re.compile(r"\b\d+/\d+\s*(cup|tsp|tbsp)", re.IGNORECASE),
)
INSTRUCTION_PATTERNS = (
    re.compile(r"\b(step\s*\d|directions?|instructions?|method|how to)\b", re.IGNORECASE),
    re.compile(
        r"\b(preheat|saut[ée]|simmer|boil|bake|roast|fry|whisk|stir|fold|chop|dice|mince|slice|season"
        r"|marinate|drain|mix|combine|cook|heat|add|pour|place|serve|garnish|let\s+(it\s+)?rest"
        r"|set\s+aside|bring\s+to)\b",
        re.IGNORECASE,
    ),
)


def caption_is_authoritative(caption: str | None) -> bool:
    if not caption or len(caption) < CAPTION_MIN_CHARS:
        return False

    has_ingredients = any(pattern.search(caption) for pattern in INGREDIENT_PATTERNS)
    has_instructions = any(pattern.search(caption) for pattern in INSTRUCTION_PATTERNS)
    return has_ingredients and has_instructions


def _format_section(header: str, text: str | None, limit: int | None = None) -> str | None:
    if not text:
        return None
    body = text[:limit] if limit is not None else text
    return f"{header}\n{body}"


def build_context_lines(
    bundle: ContentBundle,
    transcript_max_chars: int = DEFAULT_TRANSCRIPT_MAX_CHARS,
    page_text_max_chars: int = DEFAULT_PAGE_TEXT_MAX_CHARS,
) -> tuple[str, ...]:
    sections = [
        _format_section("STRUCTURED RECIPE DATA (Schema.org):", bundle.structured_data),
        f"TITLE: {bundle.title}" if bundle.title else None,
        f"AUTHOR: {bundle.author}" if bundle.author else None,
        _format_section("CAPTION / DESCRIPTION:", bundle.caption_text),
        _format_section("VIDEO TRANSCRIPT:", bundle.transcript, transcript_max_chars),
        _format_section("PAGE CONTENT:", bundle.page_text, page_text_max_chars),
        f"SOURCE: {bundle.platform} — {bundle.source_url}",
    ]
    return tuple(section for section in sections if section)


class ContentBundleAssembler:
    def __init__(
        self,
        encoder: MediaEncoder,
        max_inline_video_bytes: int = DEFAULT_MAX_INLINE_VIDEO_BYTES,
        transcript_max_chars: int = DEFAULT_TRANSCRIPT_MAX_CHARS,
        page_text_max_chars: int = DEFAULT_PAGE_TEXT_MAX_CHARS,
    ) -> None:
        self.encoder = encoder
        self.max_inline_video_bytes = max_inline_video_bytes
        self.transcript_max_chars = transcript_max_chars
        self.page_text_max_chars = page_text_max_chars

    async def assemble(self, bundle: ContentBundle) -> ExtractionContext:
        context_lines = build_context_lines(
            bundle,
            transcript_max_chars=self.transcript_max_chars,
            page_text_max_chars=self.page_text_max_chars,
        )

        media_parts: list[MediaPart] = []
        video_part = await self._try_video_part(bundle.video_local_path)
        if video_part:
            media_parts.append(video_part)

        # The video already carries the visuals, and thumbnail CDN links often expire
        if video_part is None and bundle.thumbnail_url:
            thumbnail_part = await self.encoder.build_image_part_safe(bundle.thumbnail_url)
            if thumbnail_part:
                media_parts.append(thumbnail_part)
            else:
                logger.info("Skipping invalid thumbnail, proceeding with text-only analysis")

        return ExtractionContext(
            platform=bundle.platform,
            context_lines=context_lines,
            media_parts=tuple(media_parts),
            used_video=video_part is not None,
            caption_is_authoritative=caption_is_authoritative(bundle.caption_text),
        )

    async def _try_video_part(self, video_path: str | None) -> MediaPart | None:
        if not video_path:
            return None

        path = Path(video_path)
        try:
            size = (await asyncio.to_thread(path.stat)).st_size
        except FileNotFoundError:
            logger.info("Video file %s not found, continuing without video", video_path)
            return None
        except OSError as error:
            logger.error("Failed to stat video file %s: %s", video_path, error)
            return None

        if size >= self.max_inline_video_bytes:
            logger.info(
                "Video too large for inline analysis (%d bytes >= %d), using text + thumbnail instead",
                size, self.max_inline_video_bytes,
            )
            return None

        try:
            return await self.encoder.build_video_part(path)
        except OSError as error:
            logger.error("Failed to read video file %s: %s", video_path, error)
            return None
