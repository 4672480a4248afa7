"""
Factory module for creating storage system instances.
"""

import logging

# Suppress boto3/botocore logging before importing any boto3-related modules
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('aiobotocore').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)

from s3bench.configuration import BenchmarkParams
from s3bench.systems.base import ObjectStorageSystem

logger = logging.getLogger(__name__)


def create_storage_system(params: BenchmarkParams, endpoint: str) -> ObjectStorageSystem:
    """Create a storage client bound to one endpoint.

    Args:
        params: Benchmark parameters holding the bucket and credentials
        endpoint: Endpoint URL, e.g. http://10.0.0.1:9000

    Returns:
        Storage system instance, to be used as an async context manager

    Raises:
        ValueError: If endpoint is empty
    """
    if not endpoint:
        raise ValueError("Storage endpoint must not be empty")
    logger.debug(f"Creating storage client for {endpoint}")
    return ObjectStorageSystem(endpoint, params.bucket_name, params.credentials())
