"""CLI command for the four-angle car batch.

Generates four camera-angle shots of one car with Gemini, writes them to disk
with their headlines, then uploads them one at a time.

Usage:
    python -m colca.cli.generate_cars (--car NAME | --image PATH) [OPTIONS]

Examples:
    # Preset car with the default golden-hour scene
    python -m colca.cli.generate_cars --car Blue

    # Own photo, custom scene, keep results local
    python -m colca.cli.generate_cars --image my-car.jpg \\
        --prompt "Parked on a wet city street at night, neon reflections." --no-upload
"""

import asyncio
import json
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path

import structlog

from colca.core.config import Settings, configure_logging
from colca.models.asset import InlineAsset
from colca.models.upload_item import UploadBatch, UploadItem
from colca.services import gallery
from colca.services.exceptions import ServiceError
from colca.services.gemini.client import GeminiClient
from colca.services.generation.direct_generator import DirectGenerator
from colca.services.generation.variants import DEFAULT_SCENE_PROMPT
from colca.services.upload.assets import guess_extension
from colca.services.upload.client import UploadClient
from colca.services.upload.sequencer import UploadSequencer

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Generate four camera-angle ad shots of a car")

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--car",
        help="Preset car name ({})".format(", ".join(item.name for item in gallery.GALLERY)),
    )
    source.add_argument("--image", type=Path, help="Car photo file")

    parser.add_argument("--prompt", default=DEFAULT_SCENE_PROMPT, help="Scene description")

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("generated"),
        help="Directory for images and captions.json (default: ./generated)",
    )

    parser.add_argument(
        "--no-upload",
        action="store_true",
        help="Skip uploading results to UPLOAD_ENDPOINT",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


def log_progress(batch: UploadBatch) -> None:
    """Progress callback: one line per state change."""
    logger.info("cli.upload_progress", statuses=[status.value for status in batch.statuses])


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 2 (generated but upload failed)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    try:
        if args.car:
            image = gallery.load_source(settings.gallery_dir, args.car)
        else:
            image = gallery.load_file(args.image)

        generator = DirectGenerator(
            GeminiClient(
                api_key=settings.gemini_api_key,
                image_model=settings.gemini_image_model,
                caption_model=settings.gemini_caption_model,
            ),
            caption_max_words=settings.caption_max_words,
        )
        results = await generator.generate_batch(image, args.prompt)

        args.output_dir.mkdir(parents=True, exist_ok=True)
        manifest = []
        for index, result in enumerate(results, start=1):
            asset = InlineAsset.from_data_url(result.image)
            path = args.output_dir / f"car-gen-{index}.{guess_extension(result.image)}"
            path.write_bytes(asset.data)
            manifest.append({"file": path.name, "caption": result.caption})
            print(f"[{index}] {path}  {result.caption}")
        (args.output_dir / "captions.json").write_text(json.dumps(manifest, indent=2))

    except ServiceError as e:
        logger.error("cli.generation_failed", error=str(e), error_tag=e.error_tag)
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        logger.error("cli.unexpected_error", error=str(e), error_type=type(e).__name__)
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1

    if args.no_upload:
        return 0

    batch = UploadBatch(items=[UploadItem(source=r.image, caption=r.caption) for r in results])
    try:
        sequencer = UploadSequencer(
            UploadClient(settings.upload_endpoint, timeout=settings.http_timeout_seconds)
        )
        links = await sequencer.upload_all(batch, args.prompt, on_progress=log_progress)
        for index, link in enumerate(links, start=1):
            print(f"[{index}] uploaded: {link.view_url}")
        return 0

    except ServiceError as e:
        logger.error(
            "cli.upload_failed",
            error=str(e),
            statuses=[status.value for status in batch.statuses],
        )
        print(f"\nUpload failed: {e}", file=sys.stderr)
        return 2


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
