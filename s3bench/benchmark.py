"""
Benchmark runner: prepares the bucket and payload, runs every enabled
operation batch on a shared worker pool and cleans up afterwards.
"""

import logging
import time
from typing import Callable, List, Optional

from s3bench.configuration import BenchmarkParams
from s3bench.common.aggregator import BatchAggregator
from s3bench.common.payload import Payload
from s3bench.common.records import Result
from s3bench.common.storage_factory import create_storage_system
from s3bench.common.worker_pool import WorkerPool
from s3bench.systems.base import ObjectStorageSystem

logger = logging.getLogger(__name__)


class BenchmarkRunner:
    """Runs the configured operation batches one after another."""

    def __init__(
        self,
        params: BenchmarkParams,
        payload: Optional[Payload] = None,
        storage_factory: Callable = create_storage_system,
    ):
        self.params = params
        self.payload = payload
        self.storage_factory = storage_factory
        self.bucket_created = False

        logger.info(
            f"Initialized benchmark runner: {len(params.endpoints)} endpoint(s), "
            f"{params.num_clients} clients, {params.num_samples} samples"
        )

    async def prepare(self, storage) -> Payload:
        """Make sure the bucket exists and the payload digest is known."""
        if self.payload is None:
            if not self.params.skip_write:
                self.payload = Payload.generate(self.params.object_size)
            else:
                digest_b32 = await storage.find_object_digest(self.params.object_name_prefix)
                logger.info(f"Using existing objects with digest {digest_b32}")
                self.payload = Payload.from_digest_b32(digest_b32)

        self.bucket_created = await storage.create_bucket()
        return self.payload

    async def run_batches(self) -> List[Result]:
        """Run every enabled operation on a fresh worker pool."""
        worker_pool = WorkerPool(self.params, self.payload, self.storage_factory)
        aggregator = BatchAggregator(self.params, worker_pool)
        results: List[Result] = []

        await worker_pool.start_clients()
        try:
            for operation in self.params.operations():
                results.append(await aggregator.run(operation))
            if self.params.verbose:
                logger.info(
                    f"Established connections: {ObjectStorageSystem.get_connection_count()}"
                )
        finally:
            await worker_pool.stop_clients()

        return results

    async def cleanup(self, storage) -> None:
        """Delete the benchmark objects, and the bucket if this run created it.

        Failures are logged and otherwise ignored.
        """
        num_samples = self.params.num_samples
        logger.info(f"Cleaning up {num_samples} objects...")
        start_time = time.time()
        deleted = 0

        keys = [
            self.payload.object_name(self.params.object_name_prefix, i)
            for i in range(num_samples)
        ]
        for batch_start in range(0, num_samples, self.params.delete_at_once):
            batch = keys[batch_start:batch_start + self.params.delete_at_once]

            if self.params.put_obj_tag:
                for key in batch:
                    try:
                        await storage.delete_object_tagging(key)
                    except Exception as e:
                        logger.debug(f"Delete tags {key} failed: {e}")

            logger.info(
                f"Deleting a batch of {len(batch)} objects in range "
                f"{{{batch_start}, {batch_start + len(batch) - 1}}}..."
            )
            try:
                deleted += await storage.delete_objects(batch)
            except Exception as e:
                logger.warning(f"Failed to delete batch: {e}")

        logger.info(
            f"Successfully deleted {deleted}/{num_samples} objects "
            f"in {time.time() - start_time:.2f}s"
        )

        if self.bucket_created:
            logger.info("Deleting bucket...")
            try:
                await storage.delete_bucket()
            except Exception as e:
                logger.warning(f"Failed to delete bucket: {e}")

    async def run_benchmark(self) -> List[Result]:
        """Execute the complete benchmark and return one Result per batch."""
        storage = self.storage_factory(self.params, self.params.endpoints[0])
        async with storage:
            await self.prepare(storage)
            results = await self.run_batches()
            if not self.params.skip_cleanup:
                await self.cleanup(storage)
        return results
