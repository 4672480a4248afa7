"""
Batch execution: submit the requests of one operation and fold the responses into a Result.
"""

import asyncio
import logging
import time

from s3bench.configuration import BenchmarkParams
from s3bench.common.job_generator import generate_requests, samples_per_operation
from s3bench.common.records import Operation, Result
from s3bench.common.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class BatchAggregator:
    """Runs operation batches on a started worker pool."""

    def __init__(self, params: BenchmarkParams, worker_pool: WorkerPool):
        self.params = params
        self.worker_pool = worker_pool

    async def run(self, operation: Operation) -> Result:
        """Execute one batch and wait for every one of its responses.

        Completion is driven by the response count only: a request that never
        gets a response blocks the batch.
        """
        op_samples = samples_per_operation(operation, self.params)
        logger.info(f"Running {operation} test ({op_samples} requests)...")
        start_time = time.perf_counter()

        feeder = asyncio.create_task(
            self.worker_pool.submit(
                generate_requests(operation, self.params, self.worker_pool.payload)
            ),
            name=f"submit-{operation}",
        )
        self.worker_pool.watch(feeder)

        bytes_transmitted = 0
        op_durations = []
        op_ttfb = []
        op_errors = []
        try:
            for i in range(op_samples):
                response = await self.worker_pool.next_response()
                if response.error is not None:
                    op_errors.append(
                        f"{operation}({i + 1}) completed in {response.duration:.2f}s "
                        f"with error {response.error}"
                    )
                else:
                    bytes_transmitted += response.num_bytes
                    op_durations.append(response.duration)
                    op_ttfb.append(response.ttfb)

                if self.params.verbose:
                    logger.info(
                        f"operation {operation}({i + 1}) completed in "
                        f"{response.duration:.2f}s|{response.error}"
                    )
        finally:
            if not feeder.done():
                feeder.cancel()
        await feeder

        total_duration = time.perf_counter() - start_time
        op_durations.sort()
        op_ttfb.sort()

        result = Result(
            operation=operation,
            bytes_transmitted=bytes_transmitted,
            op_durations=tuple(op_durations),
            op_ttfb=tuple(op_ttfb),
            op_errors=tuple(op_errors),
            total_duration=total_duration,
        )
        logger.info(
            f"{operation} test completed in {total_duration:.2f}s: "
            f"{len(op_durations)} succeeded, {len(op_errors)} failed"
        )
        return result
