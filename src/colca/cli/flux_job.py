"""CLI command for running one FLUX job end to end.

Submits the job, polls it at POLL_INTERVAL_SECONDS until Ready or Failed,
writes the image to disk and optionally uploads it to storage.

Usage:
    python -m colca.cli.flux_job --prompt TEXT [OPTIONS]

Examples:
    # Text-only generation
    python -m colca.cli.flux_job --prompt "Red coupe on a coastal road at dusk"

    # Edit a car photo, square output, fixed seed, then upload
    python -m colca.cli.flux_job --prompt "Move the car to a rooftop parking" \\
        --image public/car/source/Blue.png --seed 42 --upload

    # Verbose logging
    python -m colca.cli.flux_job --prompt "..." -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path

import structlog

from colca.core.config import Settings, configure_logging
from colca.models.generation_job import JobStatus
from colca.models.upload_item import UploadBatch, UploadItem
from colca.services.exceptions import ServiceError
from colca.services.flux.client import FluxClient
from colca.services.flux.poll_relay import ReadyAssetCache
from colca.services.flux.poller import wait_for_job
from colca.services.flux.submitter import MAX_REFERENCE_IMAGES, FluxJobRequest, submit_job
from colca.services.gallery import load_file
from colca.services.upload.client import UploadClient
from colca.services.upload.sequencer import UploadSequencer

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Submit a FLUX generation job and wait for the result",
        epilog="The poll cadence and attempt budget come from POLL_INTERVAL_SECONDS "
        "and POLL_MAX_ATTEMPTS",
    )

    parser.add_argument("--prompt", required=True, help="Text prompt")

    parser.add_argument(
        "--image",
        action="append",
        default=[],
        help=f"Reference image file (repeat up to {MAX_REFERENCE_IMAGES} times)",
    )

    parser.add_argument("--aspect-ratio", default="1:1", help="Aspect ratio (default: 1:1)")

    parser.add_argument(
        "--output-format",
        choices=["jpeg", "png"],
        default=None,
        help="Output encoding (default: BFL_OUTPUT_FORMAT)",
    )

    parser.add_argument("--seed", type=int, help="Deterministic seed")

    parser.add_argument(
        "--output",
        type=Path,
        help="Where to write the image (default: flux-<job id>.<ext>)",
    )

    parser.add_argument(
        "--upload",
        action="store_true",
        help="Upload the finished image to UPLOAD_ENDPOINT",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (ready), 1 (error or failed job)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    output_format = args.output_format or settings.bfl_output_format

    try:
        if len(args.image) > MAX_REFERENCE_IMAGES:
            print(
                f"Error: at most {MAX_REFERENCE_IMAGES} reference images are supported",
                file=sys.stderr,
            )
            return 1

        images = [load_file(Path(path)).base64 for path in args.image]
        request = FluxJobRequest.from_images(
            args.prompt,
            images,
            aspect_ratio=args.aspect_ratio,
            output_format=output_format,
            seed=args.seed,
        )

        client = FluxClient(
            api_key=settings.bfl_api_key,
            create_url=settings.bfl_create_url,
            timeout=settings.http_timeout_seconds,
        )
        cache = (
            ReadyAssetCache(settings.bfl_ready_cache_size)
            if settings.bfl_cache_ready_assets
            else None
        )

        job = await submit_job(client, request)
        print(f"Submitted job {job.id}")

        job = await wait_for_job(
            client,
            job,
            output_format=output_format,
            interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            cache=cache,
        )

        if job.status != JobStatus.READY or job.result_asset is None:
            logger.error("cli.job_failed", job_id=job.id, payload=job.last_payload)
            print(f"\nJob {job.id} failed: {job.last_payload}", file=sys.stderr)
            return 1

        extension = "png" if output_format == "png" else "jpg"
        output_path = args.output or Path(f"flux-{job.id}.{extension}")
        output_path.write_bytes(job.result_asset.data)
        print(f"Saved {job.width}x{job.height} image to {output_path}")

        if args.upload:
            sequencer = UploadSequencer(
                UploadClient(settings.upload_endpoint, timeout=settings.http_timeout_seconds)
            )
            batch = UploadBatch(items=[UploadItem(source=job.result_asset.to_data_url())])
            links = await sequencer.upload_all(batch, prompt=args.prompt)
            print(f"Uploaded: {links[0].view_url}")

        return 0

    except ServiceError as e:
        logger.error("cli.service_error", error=str(e), error_tag=e.error_tag)
        print(f"\nError ({e.error_tag}): {e}", file=sys.stderr)
        if e.detail and e.detail != str(e):
            print(f"Detail: {e.detail}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
