# kitchen_ai/app/services/streaming_pipeline.py
"""
Streaming extraction with visible "thinking" notes.

The model is asked to emit observation lines prefixed with ">> " and then a
```json fenced block with the recipe. Notes are surfaced as they complete; the
recipe itself is parsed only from the full text once the stream ends.

Any failure while acquiring, consuming or parsing the stream restarts the work
with the batch pipeline on the same context. Notes already delivered stay delivered.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Callable, Optional

from kitchen_ai.app.config import Settings, settings as default_settings
from kitchen_ai.app.domain.models import (
    ContentBundle,
    ExtractionContext,
    PhaseChange,
    StreamEvent,
    ThinkingNote,
    ThinkingPhase,
)
from kitchen_ai.app.schemas.recipe import RecipeResult
from kitchen_ai.app.services.extraction_pipeline import (
    ExtractionPipeline,
    build_request,
    parse_recipe_response,
)
from kitchen_ai.services.gemini_client import GeminiFailoverClient
from kitchen_ai.services.prompts import FENCE, JSON_FENCE_OPEN, NOTE_MARKER, build_streaming_recipe_prompt

logger = logging.getLogger(__name__)

NoteCallback = Callable[[str], None]
PhaseCallback = Callable[[ThinkingPhase], None]


class ThinkingStreamParser:
    """
    Line-oriented tokenizer for the thinking-notes protocol.

    Feed raw chunks in arrival order; complete lines are classified as notes,
    fence transitions, or noise. Chunk boundaries never split or duplicate a line.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._line_buffer = ""
        self.in_json_block = False

    @property
    def full_text(self) -> str:
        return "".join(self._parts)

    def feed(self, chunk: str) -> list[StreamEvent]:
        self._parts.append(chunk)
        self._line_buffer += chunk

        *complete_lines, self._line_buffer = self._line_buffer.split("\n")

        events: list[StreamEvent] = []
        for line in complete_lines:
            event = self._classify(line.strip())
            if event is not None:
                events.append(event)
        return events

    def finish(self) -> list[StreamEvent]:
        residual = self._line_buffer.strip()
        self._line_buffer = ""
        if self.in_json_block:
            return []
        note = self._note_from(residual)
        return [note] if note else []

    def _classify(self, line: str) -> Optional[StreamEvent]:
        if not self.in_json_block and line.startswith(JSON_FENCE_OPEN):
            self.in_json_block = True
            return PhaseChange(ThinkingPhase.BUILDING)

        if self.in_json_block:
            if line == FENCE:
                self.in_json_block = False
            return None

        return self._note_from(line)

    @staticmethod
    def _note_from(line: str) -> Optional[ThinkingNote]:
        if not line.startswith(NOTE_MARKER):
            return None
        text = line[len(NOTE_MARKER):].strip()
        return ThinkingNote(text) if text else None


def _noop_note(_: str) -> None:
    return None


def _noop_phase(_: ThinkingPhase) -> None:
    return None


class StreamingExtractionPipeline:
    def __init__(
        self,
        client: GeminiFailoverClient,
        fallback: ExtractionPipeline,
        config: Settings = default_settings,
    ) -> None:
        self.client = client
        self.fallback = fallback
        self.timeout_seconds = config.EXTRACTION_TIMEOUT_SECONDS

    async def extract_streaming(
        self,
        context: ExtractionContext,
        on_thinking_note: NoteCallback = _noop_note,
        on_phase_change: PhaseCallback = _noop_phase,
    ) -> RecipeResult | None:
        def dispatch(event: StreamEvent) -> None:
            if isinstance(event, ThinkingNote):
                on_thinking_note(event.text)
            else:
                on_phase_change(event.phase)

        on_phase_change(context.initial_phase)

        try:
            result = await asyncio.wait_for(self._stream(context, dispatch), timeout=self.timeout_seconds)
        except Exception as error:
            logger.warning("Streaming extraction failed, falling back to non-streaming: %s", error)
            on_phase_change(ThinkingPhase.BUILDING)
            result = await self.fallback.extract(context)

        on_phase_change(ThinkingPhase.DONE)
        return result

    async def extract_bundle_streaming(
        self,
        bundle: ContentBundle,
        on_thinking_note: NoteCallback = _noop_note,
        on_phase_change: PhaseCallback = _noop_phase,
    ) -> RecipeResult | None:
        context = await self.fallback.assembler.assemble(bundle)
        return await self.extract_streaming(context, on_thinking_note, on_phase_change)

    async def _stream(
        self,
        context: ExtractionContext,
        dispatch: Callable[[StreamEvent], None],
    ) -> RecipeResult | None:
        prompt = build_streaming_recipe_prompt(context)
        chunks = await self.client.generate_stream(build_request(prompt, context.media_parts))

        parser = ThinkingStreamParser()
        # Release the provider connection even when a callback raises or the call is cancelled
        async with aclosing(chunks) as stream:
            async for chunk in stream:
                for event in parser.feed(chunk):
                    dispatch(event)
        for event in parser.finish():
            dispatch(event)

        return parse_recipe_response(parser.full_text)
