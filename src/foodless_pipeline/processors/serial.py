"""Serial processor implementation - filters images one by one."""

from typing import List

from ..core import BatchConfig, FilterJob, FilterJobResult, ImageFilterPipeline
from .common import process_single_file


def process_batch(
    batch: List[FilterJob], config: BatchConfig, pipeline: ImageFilterPipeline
) -> List[FilterJobResult]:
    """
    Filters a batch of images serially, one by one, in the current thread.

    Args:
        batch: A list of `FilterJob` objects to process.
        config: `BatchConfig` object with settings for the batch.
        pipeline: The `ImageFilterPipeline` applied to every image.

    Returns:
        A list of `FilterJobResult` objects, in the order of `batch`.
    """
    results = []

    for job in batch:
        result = process_single_file(pipeline, job)
        results.append(result)

    return results
