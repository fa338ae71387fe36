import argparse
import asyncio
import logging
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from dotenv import find_dotenv

from kitchen_ai.app.config import Settings
from kitchen_ai.app.deps import build_assembler, build_failover_client
from kitchen_ai.app.domain.models import ContentBundle, ThinkingPhase
from kitchen_ai.app.services.extraction_pipeline import ExtractionPipeline
from kitchen_ai.app.services.streaming_pipeline import StreamingExtractionPipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


def print_note(note: str) -> None:
    print("  >>", note)


def print_phase(phase: ThinkingPhase) -> None:
    print("phase:", phase.value)


async def run_extraction(bundle: ContentBundle, config: Settings, stream: bool) -> None:
    client = build_failover_client(config)
    pipeline = ExtractionPipeline(client, build_assembler(config), config)

    if stream:
        streaming = StreamingExtractionPipeline(client, pipeline, config)
        result = await streaming.extract_bundle_streaming(bundle, print_note, print_phase)
    else:
        result = await pipeline.extract_from_bundle(bundle)

    if result is None:
        print("no recipe found")
        return

    print("title:", result.title)
    print("confidence:", result.confidence)
    print("ingredients:", len(result.ingredients))
    print("instructions:", len(result.instructions))
    print(result.model_dump_json(indent=2, exclude_none=True))


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract one recipe from local evidence")
    parser.add_argument("source_url")
    parser.add_argument("--platform", default="web")
    parser.add_argument("--video", help="local video file")
    parser.add_argument("--caption-file", help="text file with the caption/description")
    parser.add_argument("--transcript-file")
    parser.add_argument("--thumbnail", help="thumbnail URL")
    parser.add_argument("--title")
    parser.add_argument("--author")
    parser.add_argument("--stream", action="store_true", help="print thinking notes while extracting")
    args = parser.parse_args()

    def read_optional(path: str | None) -> str | None:
        return pathlib.Path(path).read_text(encoding="utf-8") if path else None

    bundle = ContentBundle(
        platform=args.platform,
        source_url=args.source_url,
        video_local_path=args.video,
        caption_text=read_optional(args.caption_file),
        transcript=read_optional(args.transcript_file),
        thumbnail_url=args.thumbnail,
        title=args.title,
        author=args.author,
    )

    env_path = find_dotenv(usecwd=True)
    config = Settings(_env_file=env_path or None)
    asyncio.run(run_extraction(bundle, config, args.stream))


if __name__ == "__main__":
    main()
