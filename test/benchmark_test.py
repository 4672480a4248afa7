"""
End-to-end tests of batch aggregation and the benchmark runner against
in-memory storage.
"""

import re
import unittest
import sys
import os

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakes import FakeStorageFactory
from s3bench.benchmark import BenchmarkRunner
from s3bench.configuration import BenchmarkParams
from s3bench.common.aggregator import BatchAggregator
from s3bench.common.payload import Payload
from s3bench.common.records import Operation
from s3bench.common.worker_pool import WorkerPool
from s3bench.report.tree import build_report

OBJECT_SIZE = 2048


def make_params(**kwargs):
    values = dict(
        endpoints=["http://10.0.0.1:9000", "http://10.0.0.2:9000"],
        object_size=OBJECT_SIZE,
        num_clients=3,
        num_samples=10,
        client_delay=0,
    )
    values.update(kwargs)
    return BenchmarkParams.create(**values)


class TestBatchAggregator(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.factory = FakeStorageFactory()
        self.params = make_params(sample_reads=3, verbose=True)
        self.pool = WorkerPool(self.params, Payload.generate(OBJECT_SIZE), self.factory)
        self.aggregator = BatchAggregator(self.params, self.pool)
        await self.pool.start_clients()

    async def asyncTearDown(self):
        await self.pool.stop_clients()

    async def test_write_batch(self):
        """Test a write batch result."""
        result = await self.aggregator.run(Operation.WRITE)

        self.assertEqual(result.operation, Operation.WRITE)
        self.assertEqual(len(result.op_durations), 10)
        self.assertEqual(len(result.op_ttfb), 10)
        self.assertEqual(result.op_errors, ())
        self.assertEqual(result.bytes_transmitted, 10 * OBJECT_SIZE)
        self.assertEqual(list(result.op_durations), sorted(result.op_durations))
        self.assertEqual(list(result.op_ttfb), sorted(result.op_ttfb))
        self.assertGreater(result.total_duration, 0)

    async def test_read_batch_size_uses_sample_reads(self):
        """Test that reads are repeated sampleReads times."""
        await self.aggregator.run(Operation.WRITE)
        result = await self.aggregator.run(Operation.READ)

        self.assertEqual(result.total_requests, 30)
        self.assertEqual(result.bytes_transmitted, 30 * OBJECT_SIZE)
        reads = [key for op, key in self.factory.calls if op == "get_object"]
        self.assertEqual(len(reads), 30)
        self.assertEqual(len(set(reads)), 10)

    async def test_every_response_is_counted(self):
        """Test that failed responses are counted."""
        await self.aggregator.run(Operation.WRITE)
        failing = self.pool.payload.object_name(self.params.object_name_prefix, 4)
        self.factory.fail_keys.add(failing)

        result = await self.aggregator.run(Operation.HEAD_OBJ)

        self.assertEqual(len(result.op_errors), 3)
        self.assertEqual(len(result.op_durations) + len(result.op_errors), 30)
        self.assertEqual(result.bytes_transmitted, 0)

    async def test_all_failures(self):
        """Test a batch in which every request fails."""
        self.factory.fail_operations.add("put_object")

        result = await self.aggregator.run(Operation.WRITE)

        self.assertEqual(len(result.op_durations), 0)
        self.assertEqual(len(result.op_errors), 10)
        self.assertEqual(result.bytes_transmitted, 0)
        for error in result.op_errors:
            self.assertRegex(error, r"^Write\(\d+\) completed in \d+\.\d{2}s with error injected")

    async def test_verbose_progress(self):
        """Test per-request progress logging."""
        with self.assertLogs("s3bench.common.aggregator", level="INFO") as logs:
            await self.aggregator.run(Operation.WRITE)

        progress = [line for line in logs.output if "operation Write(" in line]
        self.assertEqual(len(progress), 10)
        self.assertTrue(any(re.search(r"operation Write\(10\) completed in \d+\.\d{2}s\|None", line)
                            for line in progress))


class TestBenchmarkRunner(unittest.IsolatedAsyncioTestCase):

    async def test_write_read_validate(self):
        """Test a full write, read and validate run."""
        factory = FakeStorageFactory()
        params = make_params(sample_reads=2, validate=True)

        results = await BenchmarkRunner(params, storage_factory=factory).run_benchmark()

        self.assertEqual([r.operation for r in results],
                         [Operation.WRITE, Operation.READ, Operation.VALIDATE])
        expected_sizes = {Operation.WRITE: 10, Operation.READ: 20, Operation.VALIDATE: 10}
        for result in results:
            size = expected_sizes[result.operation]
            self.assertEqual(result.op_errors, ())
            self.assertEqual(result.total_requests, size)
            self.assertEqual(result.bytes_transmitted, size * OBJECT_SIZE)

        # Objects and the bucket created by the run are removed
        self.assertEqual(factory.objects, {})
        self.assertTrue(factory.bucket_deleted)
        self.assertEqual(factory.open_clients, 0)

    async def test_tagging_batches(self):
        """Test a run with tagging batches."""
        factory = FakeStorageFactory()
        params = make_params(get_obj_tag=True, sample_reads=2, num_tags=2)

        results = await BenchmarkRunner(params, storage_factory=factory).run_benchmark()

        self.assertEqual([r.operation for r in results],
                         [Operation.WRITE, Operation.PUT_OBJ_TAG, Operation.GET_OBJ_TAG])
        self.assertEqual(results[1].total_requests, 10)
        self.assertEqual(results[2].total_requests, 20)
        self.assertTrue(all(not r.op_errors for r in results))
        deleted_tags = [op for op, _ in factory.calls if op == "delete_object_tagging"]
        self.assertEqual(len(deleted_tags), 10)

    async def test_skip_write_uses_existing_objects(self):
        """Test reusing objects left by an earlier run."""
        factory = FakeStorageFactory(existing_bucket=True)
        written = Payload.generate(OBJECT_SIZE)
        for i in range(10):
            factory.objects[written.object_name("loadgen_test", i)] = written.data
        params = make_params(skip_write=True, validate=True, skip_cleanup=True)

        runner = BenchmarkRunner(params, storage_factory=factory)
        results = await runner.run_benchmark()

        self.assertEqual(runner.payload.digest, written.digest)
        self.assertEqual([r.operation for r in results], [Operation.READ, Operation.VALIDATE])
        self.assertTrue(all(not r.op_errors for r in results))
        self.assertEqual(len(factory.objects), 10)
        self.assertFalse(factory.bucket_deleted)

    async def test_skip_write_on_empty_bucket_fails(self):
        """Test that skipping writes needs existing objects."""
        params = make_params(skip_write=True)

        with self.assertRaises(ValueError):
            await BenchmarkRunner(params, storage_factory=FakeStorageFactory()).run_benchmark()

    async def test_cleanup_deletes_in_batches(self):
        """Test that cleanup sends deleteAtOnce keys per delete request."""
        factory = FakeStorageFactory()
        params = make_params(delete_at_once=3)

        await BenchmarkRunner(params, storage_factory=factory).run_benchmark()

        batches = [len(keys.split(",")) for op, keys in factory.calls if op == "delete_objects"]
        self.assertEqual(batches, [3, 3, 3, 1])
        self.assertEqual(factory.objects, {})
        self.assertTrue(factory.bucket_deleted)

    async def test_cleanup_keeps_existing_bucket(self):
        """Test that a bucket this run did not create survives cleanup."""
        factory = FakeStorageFactory(existing_bucket=True)
        params = make_params()

        await BenchmarkRunner(params, storage_factory=factory).run_benchmark()

        self.assertEqual(factory.objects, {})
        self.assertFalse(factory.bucket_deleted)
        self.assertNotIn("delete_bucket", [op for op, _ in factory.calls])

    async def test_degraded_run_reports_errors(self):
        """Test the report of a run with failing requests."""
        factory = FakeStorageFactory()
        factory.fail_operations.add("put_object")
        params = make_params(skip_read=True)

        results = await BenchmarkRunner(params, storage_factory=factory).run_benchmark()
        report = build_report(params, results)

        test = report["Tests"][0]
        self.assertEqual(test["Errors Count"].value, 10)
        self.assertEqual(len(test["Errors"]), 10)
        self.assertNotIn("Duration Avg", test)
        self.assertNotIn("Ttfb Max", test)


if __name__ == '__main__':
    unittest.main()
