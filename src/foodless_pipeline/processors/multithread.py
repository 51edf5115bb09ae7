"""Multithreaded processor implementation - uses thread pool for parallelism."""

from typing import List
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..core import BatchConfig, FilterJob, FilterJobResult, ImageFilterPipeline, configure_worker_logging
from .common import process_single_file


def process_batch(
    batch: List[FilterJob], config: BatchConfig, pipeline: ImageFilterPipeline
) -> List[FilterJobResult]:
    """
    Filter a batch of images using a thread pool.

    Every job allocates its own rasters and edge map, so the shared pipeline
    needs no locking. Pillow and numpy release the GIL for most of the work.

    Args:
        batch: List of filter jobs
        config: Batch configuration (``concurrency`` caps the worker count)
        pipeline: Pipeline shared by all workers

    Returns:
        List of results, in the order of `batch`
    """
    if not batch:
        return []

    results: List[FilterJobResult] = [None] * len(batch)  # type: ignore[list-item]
    max_workers = min(config.concurrency, len(batch))

    with ThreadPoolExecutor(max_workers=max_workers, initializer=configure_worker_logging) as executor:
        future_to_index = {
            executor.submit(process_single_file, pipeline, job): index
            for index, job in enumerate(batch)
        }

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception as e:
                # Errors process_single_file did not turn into a failed result.
                job = batch[index]
                results[index] = FilterJobResult(
                    source_path=job.source_path,
                    dest_path=job.dest_path,
                    success=False,
                    error=str(e),
                )

    return results
