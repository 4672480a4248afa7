"""
Shared utilities for benchmark metrics calculations: percentiles, averages and throughput.
"""

import logging
from typing import Sequence

from s3bench.configuration import BYTES_PER_MB

logger = logging.getLogger(__name__)


def percentile(samples: Sequence[float], pct: int) -> float:
    """
    Return the sample at the given percentile of an ascending-sorted sequence.

    The 0th percentile is the first sample and the 100th the last one; any
    other percentile picks the element at index int(pct / 100 * len(samples)).

    Args:
        samples: Samples sorted ascending
        pct: Percentile in the range [0, 100]

    Returns:
        The selected sample

    Raises:
        IndexError: If samples is empty
    """
    if pct >= 100:
        return samples[len(samples) - 1]
    if pct <= 0:
        return samples[0]
    return samples[int(pct / 100 * len(samples))]


def average(samples: Sequence[float]) -> float:
    """
    Arithmetic mean of the samples.

    Raises:
        ZeroDivisionError: If samples is empty
    """
    return sum(samples) / len(samples)


def bytes_to_mb(total_bytes: float) -> float:
    """Convert bytes to megabytes (MB, 1024 * 1024 bytes)."""
    return total_bytes / BYTES_PER_MB


def calculate_throughput_mbps(total_bytes: float, duration_seconds: float) -> float:
    """
    Calculate throughput in megabytes per second (MB/s) from bytes and duration.

    Args:
        total_bytes: Total bytes transferred
        duration_seconds: Duration in seconds

    Returns:
        Throughput in MB/s, 0.0 for a non-positive duration
    """
    if duration_seconds <= 0:
        return 0.0
    return bytes_to_mb(total_bytes) / duration_seconds
