"""Main module for the foodless pipeline CLI."""

import sys
import argparse
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .core import FoodlessPipelineError, get_logger
from .core.factories import LoggerAdapter, PipelineFactory
from .process_images import (
    add_batch_arguments,
    add_filter_arguments,
    enable_debug_logging,
    resolve_filter_settings,
    run_batch,
)


def default_output_path(input_path: Path, extension: str) -> Path:
    """``photo.png`` → ``photo_foodless.jpg`` next to the input."""
    return input_path.with_name(f"{input_path.stem}_foodless{extension}")


def run_filter(args: argparse.Namespace) -> Path:
    """Filter a single image file and write the result; returns the output path."""
    logger = get_logger("cli")
    if args.debug:
        enable_debug_logging(logger)

    filter_config, image_options = resolve_filter_settings(args)
    pipeline = PipelineFactory.create_pipeline(
        filter_config=filter_config,
        image_options=image_options,
        logger=LoggerAdapter(get_logger("pipeline")),
    )

    result = pipeline.process(args.input)
    output = args.output or default_output_path(args.input, image_options.extension)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.encoded)

    logger.info(f"Wrote {result.width}x{result.height} {result.output_format} to {output}")
    return output


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entry point for the unified command-line interface (CLI) of the Foodless Pipeline.

    Commands:
        filter: apply the unappetizing filter to one image
        batch: filter every image in a directory
        version: print version information
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="foodless-pipeline",
        description="Foodless Pipeline - make food photos look unappetizing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Filter one photo with the default parameters
  foodless-pipeline filter burger.jpg -o burger_foodless.jpg

  # Softer filter, PNG output keeping transparency
  foodless-pipeline filter cake.png --preset mild --format png

  # Filter a whole directory with a thread pool
  foodless-pipeline batch --source-dir photos --dest-dir filtered \\
                          --processor multithread

  # Show version
  foodless-pipeline version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    filter_parser = subparsers.add_parser("filter", help="Filter a single image")
    filter_parser.add_argument("input", type=Path, help="Source image file")
    filter_parser.add_argument(
        "-o", "--output", type=Path, default=None, help="Output file (default: <input>_foodless.<ext>)"
    )
    add_filter_arguments(filter_parser)

    batch_parser = subparsers.add_parser("batch", help="Filter every image in a directory")
    add_batch_arguments(batch_parser)

    subparsers.add_parser("version", help="Show version information")

    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "filter":
        try:
            run_filter(args)
        except FoodlessPipelineError as e:
            get_logger("cli").error(f"Filtering failed: {e}")
            sys.exit(1)

    elif args.command == "batch":
        try:
            summary = run_batch(args)
        except FoodlessPipelineError as e:
            get_logger("cli").error(f"Batch filtering failed: {e}")
            sys.exit(1)
        if summary["error_count"]:
            sys.exit(1)

    elif args.command == "version":
        print("Foodless Pipeline CLI")
        print(f"Version {__version__}")
        print("Unappetizing food photo filter")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
