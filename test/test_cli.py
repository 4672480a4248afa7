"""
Tests for command line parsing, validation and benchmark parameters.
"""

import unittest
import sys
import os
from unittest.mock import patch

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from s3bench import __version__
from s3bench.cli import S3BenchCLI
from s3bench.configuration import BYTES_PER_MB, BenchmarkParams, parse_size
from s3bench.common.records import Operation


class TestParseSize(unittest.TestCase):

    def test_units(self):
        """Test size suffixes."""
        self.assertEqual(parse_size("512b"), 512)
        self.assertEqual(parse_size("4Kb"), 4096)
        self.assertEqual(parse_size("80Mb"), 80 * BYTES_PER_MB)
        self.assertEqual(parse_size("1Gb"), 1024 * BYTES_PER_MB)

    def test_invalid(self):
        """Test malformed sizes."""
        for value in ("", "80", "80MB", "Mb", "1.5Mb", "10Tb", "10KK"):
            with self.assertRaises(ValueError, msg=value):
                parse_size(value)


class TestBenchmarkParams(unittest.TestCase):

    def test_default_operations(self):
        """Test the default batches."""
        params = BenchmarkParams.create(endpoints=["http://a:9000"])
        self.assertEqual(params.operations(), [Operation.WRITE, Operation.READ])

    def test_get_tags_implies_put_tags_and_disables_read(self):
        """Test the getObjTag implications."""
        params = BenchmarkParams.create(endpoints=["http://a:9000"], get_obj_tag=True)

        self.assertTrue(params.put_obj_tag)
        self.assertFalse(params.read_obj)
        self.assertEqual(params.operations(),
                         [Operation.WRITE, Operation.PUT_OBJ_TAG, Operation.GET_OBJ_TAG])

    def test_all_operations_order(self):
        """Test the batch execution order."""
        params = BenchmarkParams.create(
            endpoints=["http://a:9000"], put_obj_tag=True, get_obj_tag=True,
            head_obj=True, validate=True,
        )
        self.assertEqual(params.operations(), [
            Operation.WRITE, Operation.PUT_OBJ_TAG, Operation.GET_OBJ_TAG,
            Operation.HEAD_OBJ, Operation.VALIDATE,
        ])

    def test_skip_flags(self):
        """Test skipping the write and read batches."""
        params = BenchmarkParams.create(
            endpoints=["http://a:9000"], skip_write=True, skip_read=True, validate=True
        )
        self.assertEqual(params.operations(), [Operation.VALIDATE])

    def test_immutable(self):
        """Test that parameters cannot be modified."""
        params = BenchmarkParams.create(endpoints=["http://a:9000"])
        with self.assertRaises(Exception):
            params.num_clients = 1


class TestCLI(unittest.TestCase):

    def setUp(self):
        self.cli = S3BenchCLI()

    def parse(self, *args):
        return self.cli.build_params(self.cli.parser.parse_args(list(args)))

    def test_build_params(self):
        """Test building parameters from arguments."""
        params = self.parse(
            "--endpoint", "http://a:9000, http://b:9000",
            "--objectSize", "1Mb", "--numClients", "4", "--numSamples", "16",
            "--sampleReads", "2", "--clientDelay", "-10", "--headObj", "--jsonOutput",
        )

        self.assertEqual(params.endpoints, ("http://a:9000", "http://b:9000"))
        self.assertEqual(params.object_size, BYTES_PER_MB)
        self.assertEqual(params.num_clients, 4)
        self.assertEqual(params.num_samples, 16)
        self.assertEqual(params.sample_reads, 2)
        self.assertEqual(params.client_delay, -10)
        self.assertTrue(params.head_obj)
        self.assertFalse(params.read_obj)
        self.assertTrue(params.json_output)

    def test_validation_errors(self):
        """Test argument validation."""
        invalid = [
            ("--endpoint", "http://a:9000", "--numClients", "10", "--numSamples", "5"),
            ("--endpoint", "http://a:9000", "--numClients", "0", "--numSamples", "0"),
            ("--endpoint", "", "--numClients", "1", "--numSamples", "5"),
            ("--endpoint", "http://a:9000", "--deleteAtOnce", "0"),
            ("--endpoint", "http://a:9000", "--numTags", "0"),
            ("--endpoint", "http://a:9000", "--objectSize", "big"),
        ]
        for args in invalid:
            with self.assertRaises(ValueError, msg=args):
                self.parse(*args)

    def test_run_rejects_invalid_arguments(self):
        """Test the exit status for invalid arguments."""
        with patch("sys.stderr"), patch("s3bench.cli.setup_logging"):
            code = self.cli.run(["--endpoint", "http://a:9000", "--numTags", "0"])
        self.assertEqual(code, 1)

    def test_version(self):
        """Test the version flag."""
        with patch("builtins.print") as mock_print:
            code = self.cli.run(["--version"])

        self.assertEqual(code, 0)
        mock_print.assert_called_once_with(__version__)


if __name__ == '__main__':
    unittest.main()
