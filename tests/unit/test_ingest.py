from __future__ import annotations

from pathlib import Path

import pytest

from kitchen_ai.app.domain.models import ContentBundle, MediaPart
from kitchen_ai.services.ingest import (
    ContentBundleAssembler,
    build_context_lines,
    caption_is_authoritative,
)
from kitchen_ai.services.media import video_mime_for

RECIPE_CAPTION = (
    "Weekend treat! You need 2 cups flour, 1 tsp salt and 1 cup sugar. "
    "Then bake for 20 minutes until golden."
)
INGREDIENTS_ONLY_CAPTION = (
    "My grandmother's favourite: 2 cups flour, 1 tsp salt, 3 eggs and 1 cup milk. "
    "Pure nostalgia in every bite!!"
)
STEPS_ONLY_CAPTION = (
    "Preheat the oven, whisk everything together and bake for 20 minutes "
    "until the top is golden brown."
)


class EncoderStub:
    def __init__(self, thumbnail: MediaPart | None = None) -> None:
        self.thumbnail = thumbnail
        self.image_requests: list[str] = []
        self.video_requests: list[str] = []

    async def build_image_part_safe(self, uri: str) -> MediaPart | None:
        self.image_requests.append(uri)
        return self.thumbnail

    async def build_video_part(self, path) -> MediaPart:
        self.video_requests.append(str(path))
        return MediaPart(data="AAAAGGZ0eXA=", mime_type=video_mime_for(str(path)))


THUMBNAIL = MediaPart(data="/9j/4AAQ", mime_type="image/jpeg")


class TestCaptionAuthority:
    def test_ingredients_and_steps(self) -> None:
        assert caption_is_authoritative(RECIPE_CAPTION) is True

    def test_short_caption(self) -> None:
        assert caption_is_authoritative("2 cups flour, 1 tsp salt") is False

    def test_empty_or_missing(self) -> None:
        assert caption_is_authoritative("") is False
        assert caption_is_authoritative(None) is False

    def test_ingredients_without_steps(self) -> None:
        assert caption_is_authoritative(INGREDIENTS_ONLY_CAPTION) is False

    def test_steps_without_ingredients(self) -> None:
        assert caption_is_authoritative(STEPS_ONLY_CAPTION) is False


class TestBuildContextLines:
    def test_section_order(self) -> None:
        bundle = ContentBundle(
            platform="tiktok",
            source_url="https://tiktok.com/@chef/video/1",
            caption_text="caption",
            transcript="transcript",
            page_text="page",
            structured_data='{"@type": "Recipe"}',
            title="Garlic Pasta",
            author="chef",
        )

        lines = build_context_lines(bundle)

        assert lines == (
            'STRUCTURED RECIPE DATA (Schema.org):\n{"@type": "Recipe"}',
            "TITLE: Garlic Pasta",
            "AUTHOR: chef",
            "CAPTION / DESCRIPTION:\ncaption",
            "VIDEO TRANSCRIPT:\ntranscript",
            "PAGE CONTENT:\npage",
            "SOURCE: tiktok — https://tiktok.com/@chef/video/1",
        )

    def test_source_line_is_always_present(self) -> None:
        lines = build_context_lines(ContentBundle(platform="web", source_url="https://example.com/r"))

        assert lines == ("SOURCE: web — https://example.com/r",)

    def test_long_sections_are_truncated(self) -> None:
        bundle = ContentBundle(
            platform="youtube",
            source_url="https://youtu.be/x",
            transcript="t" * 20_000,
            page_text="p" * 20_000,
        )

        transcript_line, page_line, _ = build_context_lines(bundle)

        assert transcript_line == "VIDEO TRANSCRIPT:\n" + "t" * 12_000
        assert page_line == "PAGE CONTENT:\n" + "p" * 10_000

    def test_custom_limits(self) -> None:
        bundle = ContentBundle(platform="youtube", source_url="u", transcript="abcdef")

        assert build_context_lines(bundle, transcript_max_chars=3)[0] == "VIDEO TRANSCRIPT:\nabc"


class TestContentBundleAssembler:
    @pytest.mark.asyncio
    async def test_text_only(self) -> None:
        encoder = EncoderStub()
        assembler = ContentBundleAssembler(encoder)

        context = await assembler.assemble(ContentBundle(platform="web", source_url="https://example.com"))

        assert context.media_parts == ()
        assert context.used_video is False
        assert encoder.image_requests == []

    @pytest.mark.asyncio
    async def test_small_video_wins_over_thumbnail(self, tmp_path: Path) -> None:
        video = tmp_path / "reel.mp4"
        video.write_bytes(b"\x00" * 1024)
        encoder = EncoderStub(thumbnail=THUMBNAIL)
        assembler = ContentBundleAssembler(encoder)

        context = await assembler.assemble(
            ContentBundle(
                platform="instagram",
                source_url="https://instagram.com/reel/1",
                video_local_path=str(video),
                thumbnail_url="https://cdn.example.com/thumb.jpg",
                caption_text=RECIPE_CAPTION,
            )
        )

        assert len(context.media_parts) == 1
        assert context.media_parts[0].mime_type == "video/mp4"
        assert context.used_video is True
        assert context.caption_is_authoritative is True
        assert encoder.image_requests == []

    @pytest.mark.asyncio
    async def test_oversized_video_falls_back_to_thumbnail(self, tmp_path: Path) -> None:
        video = tmp_path / "long.mp4"
        with video.open("wb") as handle:
            handle.truncate(25 * 1024 * 1024)
        encoder = EncoderStub(thumbnail=THUMBNAIL)
        assembler = ContentBundleAssembler(encoder)

        context = await assembler.assemble(
            ContentBundle(
                platform="youtube",
                source_url="https://youtu.be/x",
                video_local_path=str(video),
                thumbnail_url="https://cdn.example.com/thumb.jpg",
            )
        )

        assert context.media_parts == (THUMBNAIL,)
        assert context.used_video is False
        assert encoder.video_requests == []

    @pytest.mark.asyncio
    async def test_missing_video_file_uses_thumbnail(self, tmp_path: Path) -> None:
        encoder = EncoderStub(thumbnail=THUMBNAIL)
        assembler = ContentBundleAssembler(encoder)

        context = await assembler.assemble(
            ContentBundle(
                platform="tiktok",
                source_url="https://tiktok.com/x",
                video_local_path=str(tmp_path / "gone.mp4"),
                thumbnail_url="https://cdn.example.com/thumb.jpg",
            )
        )

        assert context.media_parts == (THUMBNAIL,)
        assert context.used_video is False

    @pytest.mark.asyncio
    async def test_invalid_thumbnail_means_text_only(self) -> None:
        encoder = EncoderStub(thumbnail=None)
        assembler = ContentBundleAssembler(encoder)

        context = await assembler.assemble(
            ContentBundle(
                platform="instagram",
                source_url="https://instagram.com/p/1",
                thumbnail_url="https://cdn.example.com/expired.jpg",
            )
        )

        assert context.media_parts == ()
        assert encoder.image_requests == ["https://cdn.example.com/expired.jpg"]

    @pytest.mark.asyncio
    async def test_limit_is_exclusive(self, tmp_path: Path) -> None:
        video = tmp_path / "edge.mov"
        video.write_bytes(b"\x00" * 100)
        encoder = EncoderStub()
        assembler = ContentBundleAssembler(encoder, max_inline_video_bytes=100)

        context = await assembler.assemble(
            ContentBundle(platform="web", source_url="u", video_local_path=str(video))
        )

        assert context.used_video is False
        assert encoder.video_requests == []
