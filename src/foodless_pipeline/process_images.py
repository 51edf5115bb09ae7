#!/usr/bin/env python3
"""
Batch Foodless Image Filter CLI

Discovers images → Downscales → Applies the unappetizing filter → Writes to destination
Supports two concurrency strategies: serial, multithread
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from pydantic import ValidationError

from .core import BatchConfig, FoodlessPipelineError, InvalidConfig, get_logger
from .core.models import FilterConfig, ImageOptions
from .core.settings import FILTER_PRESETS, load_filter_config, load_filter_config_file, load_image_options
from .processors.common import ProcessBatchFunction, run_processing
from .processors import serial_process_batch, multithread_process_batch

PROCESSORS: Dict[str, Tuple[str, ProcessBatchFunction]] = {
    "serial": ("Serial", serial_process_batch),
    "multithread": ("Multithreaded", multithread_process_batch),
}


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by every command that runs the filter."""
    parser.add_argument(
        "--preset",
        default="default",
        choices=sorted(FILTER_PRESETS),
        help="Base filter preset (default: default)",
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="JSON file with filter parameters"
    )
    parser.add_argument(
        "--max-dimension", type=int, default=None, help="Longest output side in pixels (default: 800)"
    )
    parser.add_argument(
        "--quality", type=float, default=None, help="Lossy encoding quality in (0, 1] (default: 0.8)"
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        type=str.upper,
        default=None,
        choices=["JPEG", "PNG", "WEBP"],
        help="Output format (default: JPEG)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")


def resolve_filter_settings(args: argparse.Namespace) -> Tuple[FilterConfig, ImageOptions]:
    """Build filter config and image options from parsed arguments plus environment."""
    if args.config is not None:
        filter_config = load_filter_config_file(args.config, preset=args.preset)
    else:
        filter_config = load_filter_config(preset=args.preset)

    image_options = load_image_options(
        {
            "max_dimension": args.max_dimension,
            "quality": args.quality,
            "output_format": args.output_format,
        }
    )
    return filter_config, image_options


def enable_debug_logging(logger: logging.Logger) -> None:
    logger.setLevel(logging.DEBUG)
    logging.getLogger().setLevel(logging.DEBUG)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Apply the foodless filter to every image in a directory"
    )
    add_batch_arguments(parser)
    return parser


def add_batch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source-dir", type=Path, required=True, help="Directory of source images")
    parser.add_argument("--dest-dir", type=Path, required=True, help="Directory for filtered images")
    parser.add_argument(
        "--processor",
        type=str,
        default="serial",
        choices=sorted(PROCESSORS),
        help="Processing strategy to use (default: serial)",
    )
    parser.add_argument(
        "--batch-size", type=int, default=100, help="Batch size for progress reporting"
    )
    parser.add_argument(
        "--concurrency", type=int, default=8, help="Worker threads for the multithread processor"
    )
    parser.add_argument(
        "--no-recursive", dest="recursive", action="store_false", help="Only scan the top-level directory"
    )
    add_filter_arguments(parser)


def run_batch(args: argparse.Namespace) -> Dict[str, Any]:
    """Resolve configuration from ``args`` and filter the source directory."""
    logger = get_logger("processor")
    filter_config, image_options = resolve_filter_settings(args)

    try:
        config = BatchConfig(
            source_dir=args.source_dir,
            dest_dir=args.dest_dir,
            processor=args.processor,
            batch_size=args.batch_size,
            concurrency=args.concurrency,
            recursive=args.recursive,
            debug=args.debug,
            filter_config=filter_config,
            image_options=image_options,
        )
    except ValidationError as exc:
        raise InvalidConfig(f"Invalid batch options: {exc}") from exc

    if config.debug:
        enable_debug_logging(logger)

    processor_name, process_batch_fn = PROCESSORS[config.processor]
    return run_processing(config, processor_name, process_batch_fn)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entry point for the batch filter script.

    Parses arguments, resolves configuration, selects the processing
    strategy and runs it. Exits with status 1 on configuration errors or
    when any image fails.
    """
    logger = get_logger("processor")
    try:
        logger.info("Starting Foodless Image Filter")
        args = build_parser().parse_args(argv)
        summary = run_batch(args)
    except KeyboardInterrupt:
        logger.warning("Processing interrupted by user.")
        return
    except FoodlessPipelineError as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        sys.exit(1)

    if summary["error_count"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
