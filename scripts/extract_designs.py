#!/usr/bin/env python3
"""
Design Extraction CLI

Run the extraction pipeline over image files, write each accepted design as
a PNG, and write a JSON summary (regions, quality reports) per input image.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from design_extractor.config import get  # noqa: E402
from design_extractor.exceptions import DesignExtractionError  # noqa: E402
from design_extractor.logging_config import configure_logging, get_logger  # noqa: E402
from design_extractor.models import PipelineSettings  # noqa: E402
from design_extractor.pipeline import DesignPipeline  # noqa: E402


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Extract design regions from mockup images.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract designs from one mockup into ./designs/
  python scripts/extract_designs.py mockup.png --output designs

  # Several images, with a learned-detector model
  python scripts/extract_designs.py a.png b.jpg --model models/detector.onnx

  # Stricter learned-detector threshold
  python scripts/extract_designs.py mockup.png --confidence-threshold 0.7
""",
    )

    parser.add_argument(
        "images",
        nargs="+",
        type=Path,
        help="Image files to process",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("designs"),
        help="Output directory (default: ./designs)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Learned-detector ONNX model (default: $DESIGN_EXTRACTOR_MODEL_PATH)",
    )
    parser.add_argument(
        "--confidence-threshold",
        type=float,
        default=None,
        help="Learned-detector confidence threshold (default: from config)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )

    return parser.parse_args(argv)


def process_image(pipeline: DesignPipeline, image_path: Path, output_dir: Path, logger) -> int:
    """Run the pipeline on one file and write its designs and summary. Returns design count."""
    result = pipeline.run_image_bytes(image_path.read_bytes())

    target = output_dir / image_path.stem
    target.mkdir(parents=True, exist_ok=True)
    for design in result.designs:
        (target / f"{design.id}.png").write_bytes(design.image_bytes)

    summary = {"source": str(image_path), **result.to_dict()}
    (target / "summary.json").write_text(json.dumps(summary, indent=2, default=str))

    logger.info(f"{image_path.name}: {len(result.designs)} designs written to {target}")
    return len(result.designs)


def main(argv: List[str] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else get("app", "log_level"), service=get("app", "service_name"))
    logger = get_logger("scripts.extract_designs")

    overrides = {}
    if args.model:
        overrides["model_path"] = args.model
    if args.confidence_threshold is not None:
        overrides["confidence_threshold"] = args.confidence_threshold

    try:
        settings = PipelineSettings.from_config(**overrides)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    pipeline = DesignPipeline(settings=settings)
    state = pipeline.session.initialize()
    logger.info(f"Learned detector session: {state.value}")

    failures = 0
    total = 0
    for image_path in args.images:
        try:
            total += process_image(pipeline, image_path, args.output, logger)
        except (DesignExtractionError, OSError) as e:
            failures += 1
            logger.error(f"{image_path}: {e}")

    logger.info("=" * 60)
    logger.info(f"Processed {len(args.images) - failures}/{len(args.images)} images, {total} designs")
    logger.info("=" * 60)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
