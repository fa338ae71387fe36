# kitchen_ai/app/deps.py (process-wide singletons, exposed as dependencies)

from __future__ import annotations

from kitchen_ai.app.config import Settings, settings
from kitchen_ai.app.services.extraction_pipeline import ExtractionPipeline
from kitchen_ai.app.services.streaming_pipeline import StreamingExtractionPipeline
from kitchen_ai.services.gemini_client import CredentialPool, GeminiFailoverClient
from kitchen_ai.services.ingest import ContentBundleAssembler
from kitchen_ai.services.media import MediaEncoder

_client: GeminiFailoverClient | None = None
_pipeline: ExtractionPipeline | None = None
_streaming_pipeline: StreamingExtractionPipeline | None = None


def build_failover_client(config: Settings) -> GeminiFailoverClient:
    pool = CredentialPool.from_keys(config.api_keys)
    return GeminiFailoverClient(pool, model_name=config.GEMINI_MODEL)


def build_assembler(config: Settings) -> ContentBundleAssembler:
    encoder = MediaEncoder(cache_dir=config.MEDIA_CACHE_DIR, timeout=config.DOWNLOAD_TIMEOUT_SECONDS)
    return ContentBundleAssembler(
        encoder,
        max_inline_video_bytes=config.MAX_INLINE_VIDEO_BYTES,
        transcript_max_chars=config.TRANSCRIPT_MAX_CHARS,
        page_text_max_chars=config.PAGE_TEXT_MAX_CHARS,
    )


def get_failover_client() -> GeminiFailoverClient:
    global _client
    if _client is None:
        _client = build_failover_client(settings)
    return _client


def get_extraction_pipeline() -> ExtractionPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ExtractionPipeline(get_failover_client(), build_assembler(settings), settings)
    return _pipeline


def get_streaming_pipeline() -> StreamingExtractionPipeline:
    global _streaming_pipeline
    if _streaming_pipeline is None:
        _streaming_pipeline = StreamingExtractionPipeline(
            get_failover_client(),
            get_extraction_pipeline(),
            settings,
        )
    return _streaming_pipeline


def reset() -> None:
    global _client, _pipeline, _streaming_pipeline
    _client = None
    _pipeline = None
    _streaming_pipeline = None
