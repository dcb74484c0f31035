from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Callable, Sequence

from dtfprint.canvas.types import PhysicalSpec
from dtfprint.config import settings
from dtfprint.errors import DtfPrintError
from dtfprint.logging_config import setup_logging
from dtfprint.pipeline.candidate import StageEvent
from dtfprint.pipeline.orchestrator import generate_candidates
from dtfprint.pipeline.publish import PublishedOption, publish_candidates
from dtfprint.providers.base import BackgroundRemover, BlobStore, ImageGenerator, Vectorizer
from dtfprint.providers.openai_images import OpenAIImageGenerator
from dtfprint.schemas import GenerationRequest
from dtfprint.storage.local import LocalBlobStore

logger = logging.getLogger(__name__)


def generate_and_publish(
    request: GenerationRequest,
    *,
    generator: ImageGenerator,
    store: BlobStore | None = None,
    background_remover: BackgroundRemover | None = None,
    vectorizer: Vectorizer | None = None,
    spec: PhysicalSpec | None = None,
    on_event: Callable[[StageEvent], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[PublishedOption]:
    """Run the candidate pipeline for ``request`` and upload every surviving candidate."""
    results = generate_candidates(
        request,
        generator=generator,
        background_remover=background_remover,
        vectorizer=vectorizer,
        spec=spec,
        on_event=on_event,
        sleep=sleep,
    )
    store = store or LocalBlobStore()
    return publish_candidates(results, store, dpi=settings.print_dpi)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dtfprint",
        description="Generate print-ready DTF transfer PNGs with bleed and proof overlays",
    )
    parser.add_argument("prompt", help="What to print")
    parser.add_argument(
        "--width",
        type=float,
        default=settings.default_width_in,
        help="Trim width in inches",
    )
    parser.add_argument(
        "--height",
        type=float,
        default=settings.default_height_in,
        help="Trim height in inches",
    )
    parser.add_argument(
        "--variations",
        "-n",
        type=int,
        default=1,
        help=f"Number of candidates (1-{settings.variation_count_max})",
    )
    parser.add_argument(
        "--storage-root",
        type=str,
        default=settings.storage_root,
        help="Directory the PNG artifacts are written to",
    )
    parser.add_argument("--log-level", type=str, help="Override LOG_LEVEL")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    generator_factory: Callable[[], ImageGenerator] = OpenAIImageGenerator,
) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        request = GenerationRequest(
            prompt=args.prompt,
            variation_count=args.variations,
            width_in=args.width,
            height_in=args.height,
        )
        options = generate_and_publish(
            request,
            generator=generator_factory(),
            store=LocalBlobStore(args.storage_root),
        )
    except (DtfPrintError, ValueError) as exc:
        logger.error("generation failed: %s", exc)
        return 1

    for option in options:
        print(f"#{option.index} {option.id}")
        print(f"  final: {option.final_url}")
        print(f"  proof: {option.proof_url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
