"""Common functions shared across all processor implementations."""

import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..core import (
    BatchConfig,
    FilterJob,
    FilterJobResult,
    ImageFilterPipeline,
    get_logger,
)
from ..core.exceptions import ConfigurationError, FoodlessPipelineError, with_error_handling
from ..core.error_handling import BatchOperationContextManager
from ..core.factories import LoggerAdapter
from ..core.image_utils import calculate_dest_path, is_supported_image

ProcessBatchFunction = Callable[
    [List[FilterJob], BatchConfig, ImageFilterPipeline], List[FilterJobResult]
]


@with_error_handling
def _write_output(path: Path, data: bytes) -> None:
    logger = get_logger("processor")
    logger.debug(f"Writing {len(data)} bytes to {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def process_single_file(
    pipeline: ImageFilterPipeline, job: FilterJob
) -> FilterJobResult:
    """Filter one image file: Decode → Downscale → Filter → Encode → Write."""
    logger = get_logger("processor")
    result = FilterJobResult(source_path=job.source_path, dest_path=job.dest_path)
    start_time = time.perf_counter()

    try:
        filtered = pipeline.process(job.source_path)
        _write_output(job.dest_path, filtered.encoded)

        result.success = True
        result.width = filtered.width
        result.height = filtered.height
        logger.debug(f"[{job.source_path}] Filtering completed successfully.")
    except FoodlessPipelineError as e:
        # The pipeline already logged the details; record the failure on the result.
        result.error = str(e)
        logger.error(f"[{job.source_path}] Failed filtering due to {type(e).__name__}: {e}")

    result.processing_time = time.perf_counter() - start_time
    return result


def _is_within(path: Path, directory: Path) -> bool:
    try:
        path.resolve().relative_to(directory.resolve())
        return True
    except ValueError:
        return False


def discover_image_files(config: BatchConfig) -> List[Path]:
    """
    List the images to filter under ``config.source_dir``.

    Files already under ``config.dest_dir`` are skipped so output nested in
    the source tree is never re-filtered.

    Raises:
        ConfigurationError: If the source directory does not exist
    """
    logger = get_logger("processor")
    source_dir = config.source_dir
    if not source_dir.is_dir():
        raise ConfigurationError(f"Source directory not found: {source_dir}")

    candidates = source_dir.rglob("*") if config.recursive else source_dir.iterdir()
    files = sorted(
        path
        for path in candidates
        if is_supported_image(path) and not _is_within(path, config.dest_dir)
    )

    logger.info(f"Found {len(files)} image files in {source_dir}")
    return files


def _disambiguate(dest_path: Path, source_path: Path, taken: Set[Path]) -> Path:
    # dish.jpg and dish.png both become dish.<ext>; the later one keeps its
    # source extension in the name (dish_png.<ext>), then a counter.
    source_ext = source_path.suffix.lstrip(".").lower()
    candidate = dest_path.with_name(f"{dest_path.stem}_{source_ext}{dest_path.suffix}")
    counter = 2
    while candidate in taken:
        candidate = dest_path.with_name(
            f"{dest_path.stem}_{source_ext}_{counter}{dest_path.suffix}"
        )
        counter += 1
    return candidate


def create_jobs(source_files: List[Path], config: BatchConfig) -> List[FilterJob]:
    """
    Create filter jobs from a list of source files.

    Every job gets a distinct destination. Sources that would collide
    (same relative stem, different extension) are renamed so no output is
    overwritten.
    """
    logger = get_logger("processor")
    extension = config.image_options.extension
    taken: Set[Path] = set()
    jobs = []

    for source_path in source_files:
        dest_path = calculate_dest_path(
            source_path, config.source_dir, config.dest_dir, extension
        )
        if dest_path in taken:
            renamed = _disambiguate(dest_path, source_path, taken)
            logger.warning(
                f"[{source_path}] Output {dest_path} already used by another image; writing {renamed}"
            )
            dest_path = renamed
        taken.add(dest_path)
        jobs.append(FilterJob(source_path=source_path, dest_path=dest_path))

    return jobs


def log_configuration(config: BatchConfig, processor_name: str):
    """Log batch configuration."""
    logger = get_logger("processor")
    filter_config = config.filter_config
    options = config.image_options

    logger.info("=" * 80)
    logger.info(f"{processor_name.upper()} FOODLESS IMAGE FILTER")
    logger.info("=" * 80)

    logger.info("CONFIGURATION:")
    logger.info(f"  Source:        {config.source_dir}")
    logger.info(f"  Destination:   {config.dest_dir}")
    logger.info("")

    logger.info("FILTER OPTIONS:")
    logger.info(
        f"  Edge threshold: {filter_config.edge_threshold}, "
        f"highlight: {filter_config.highlight_threshold}, "
        f"shadow: {filter_config.shadow_threshold}"
    )
    logger.info(
        f"  Desaturation: {filter_config.desaturation}, "
        f"contrast: {filter_config.contrast}, "
        f"brightness: {filter_config.brightness}, "
        f"edge sharpness: {filter_config.edge_sharpness}"
    )
    logger.info(
        f"  Output: {options.output_format} (quality {options.encoder_quality}), "
        f"max dimension {options.max_dimension}px"
    )
    logger.info(f"  Batch Size: {config.batch_size}")
    logger.info("=" * 80)


def log_final_statistics(
    total_time: float, total_items: int, processed_count: int, error_count: int
):
    """Log final processing statistics."""
    logger = get_logger("processor")
    overall_rate = total_items / total_time if total_time > 0 else 0

    logger.info("=" * 80)
    logger.info("FILTERING COMPLETED")
    logger.info("=" * 80)
    logger.info(f"Total execution time: {total_time:.1f}s")
    logger.info(f"Overall processing rate: {overall_rate:.1f} images/sec")
    logger.info(f"Successfully filtered: {processed_count}")
    logger.info(f"Errors encountered: {error_count}")
    logger.info("=" * 80)


def log_batch_progress(
    batch_index: int,
    batch_size: int,
    total_items: int,
    batch_time: float,
    processed_count: int,
    error_count: int,
):
    """Log progress for batch processing."""
    logger = get_logger("processor")
    total_processed = batch_index + batch_size
    progress = (total_processed / total_items) * 100
    rate = batch_size / batch_time if batch_time > 0 else 0

    logger.info(
        f"Progress: {total_processed}/{total_items} ({progress:.1f}%) - "
        f"Rate: {rate:.1f} images/sec - "
        f"Success: {processed_count}, Errors: {error_count}"
    )


def count_batch_results(results: List[FilterJobResult]) -> Tuple[int, int]:
    """
    Count successful and failed results in a batch.

    Returns:
        Tuple of (processed_count, error_count)
    """
    processed_count = sum(1 for result in results if result.success)
    return processed_count, len(results) - processed_count


def process_all_batches(
    jobs: List[FilterJob],
    config: BatchConfig,
    pipeline: ImageFilterPipeline,
    process_batch_fn: ProcessBatchFunction,
    processor_name_for_logging: str,
) -> Tuple[int, int]:
    logger = get_logger("processor")
    total_processed_items = 0
    total_error_items = 0
    operation_display_name = f"Image Batch Filtering via {processor_name_for_logging}"

    with BatchOperationContextManager(operation_name=operation_display_name) as batch_manager:
        num_batches = (len(jobs) + config.batch_size - 1) // config.batch_size
        logger.info(f"Starting filtering of {len(jobs)} images in {num_batches} batches.")

        for i in range(0, len(jobs), config.batch_size):
            batch_jobs = jobs[i : i + config.batch_size]
            current_batch_number = (i // config.batch_size) + 1
            logger.info(f"Processing batch {current_batch_number}/{num_batches} with {len(batch_jobs)} images.")
            batch_start_time = time.perf_counter()

            batch_results = process_batch_fn(batch_jobs, config, pipeline)

            batch_success_count, batch_fail_count = count_batch_results(batch_results)
            for res_item in batch_results:
                if not res_item.success:
                    batch_manager.add_error(
                        item_identifier=str(res_item.source_path),
                        error_message=res_item.error or "Unknown error",
                    )

            total_processed_items += batch_success_count
            total_error_items += batch_fail_count

            log_batch_progress(
                i,
                len(batch_jobs),
                len(jobs),
                time.perf_counter() - batch_start_time,
                total_processed_items,
                total_error_items,
            )

    if total_error_items > 0:
        logger.warning(f"Completed all batches. Images filtered: {total_processed_items}. Errors: {total_error_items}.")
    else:
        logger.info(f"Completed all batches successfully. Images filtered: {total_processed_items}.")

    return total_processed_items, total_error_items


def run_processing(
    config: BatchConfig,
    processor_name: str,
    process_batch_fn: ProcessBatchFunction,
    pipeline: Optional[ImageFilterPipeline] = None,
) -> Dict[str, Any]:
    """
    Filter every image under the configured source directory.

    Returns:
        Summary with ``total_items``, ``processed_count``, ``error_count`` and
        ``processing_time``.
    """
    logger = get_logger("processor")
    log_configuration(config, processor_name)
    start_time = time.perf_counter()

    if pipeline is None:
        pipeline = ImageFilterPipeline(
            filter_config=config.filter_config,
            image_options=config.image_options,
            logger=LoggerAdapter(get_logger("pipeline")),
        )

    try:
        source_files = discover_image_files(config)
        if not source_files:
            logger.warning(f"No image files found in {config.source_dir}. Nothing to do.")
            return {
                "total_items": 0,
                "processed_count": 0,
                "error_count": 0,
                "processing_time": 0.0,
            }

        jobs = create_jobs(source_files, config)
        logger.info(f"Filtering {len(jobs)} images using {processor_name}...")

        processed_count, error_count = process_all_batches(
            jobs, config, pipeline, process_batch_fn, processor_name
        )
    except FoodlessPipelineError as app_err:
        logger.error(f"Critical application error in {processor_name} processing: {app_err}", exc_info=True)
        raise

    total_time = time.perf_counter() - start_time
    log_final_statistics(total_time, len(jobs), processed_count, error_count)
    return {
        "total_items": len(jobs),
        "processed_count": processed_count,
        "error_count": error_count,
        "processing_time": total_time,
    }
