import sys
import logging
import argparse

import uvloop

from s3bench import __version__
from s3bench.configuration import (
    BenchmarkParams,
    BUCKET_NAME,
    S3_ENDPOINT,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_REGION,
    DEFAULT_OBJECT_NAME_PREFIX,
    DEFAULT_OBJECT_SIZE,
    DEFAULT_NUM_CLIENTS,
    DEFAULT_NUM_SAMPLES,
    DEFAULT_SAMPLE_READS,
    DEFAULT_CLIENT_DELAY_MS,
    DEFAULT_DELETE_AT_ONCE,
    DEFAULT_NUM_TAGS,
    DEFAULT_TAG_NAME_PREFIX,
    DEFAULT_TAG_VAL_PREFIX,
    DEFAULT_REPORT_FORMAT,
    parse_size,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Log to stderr, leaving stdout to the report (only if not already configured)."""
    if not logging.root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s',
            stream=sys.stderr,
        )


class S3BenchCLI:
    """Command line interface for the object storage load generator."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            prog='s3bench',
            description='Object storage load generator and latency benchmark',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Write, then read 200 objects of 80 MB with 40 clients
  s3bench --endpoint http://10.0.0.1:9000 --bucket loadgen

  # Read each object 3 times over two endpoints and keep the objects
  s3bench --endpoint http://10.0.0.1:9000,http://10.0.0.2:9000 --sampleReads 3 --skipCleanup

  # Validate previously written objects and print JSON
  s3bench --endpoint http://10.0.0.1:9000 --skipWrite --skipRead --validate --jsonOutput
            """
        )

        parser.add_argument('--endpoint', type=str, default=S3_ENDPOINT,
                            help='S3 endpoint(s) comma separated - http://IP:PORT,http://IP:PORT')
        parser.add_argument('--region', type=str, default=AWS_REGION,
                            help=f'AWS region to use (default: {AWS_REGION})')
        parser.add_argument('--accessKey', type=str, default=AWS_ACCESS_KEY_ID,
                            help='the S3 access key (default: $AWS_ACCESS_KEY_ID)')
        parser.add_argument('--accessSecret', type=str, default=AWS_SECRET_ACCESS_KEY,
                            help='the S3 access secret (default: $AWS_SECRET_ACCESS_KEY)')
        parser.add_argument('--bucket', type=str, default=BUCKET_NAME,
                            help=f'the bucket for which to run the test (default: {BUCKET_NAME})')
        parser.add_argument('--objectNamePrefix', type=str, default=DEFAULT_OBJECT_NAME_PREFIX,
                            help='prefix of the object name that will be used')
        parser.add_argument('--objectSize', type=str, default=DEFAULT_OBJECT_SIZE,
                            help=f'size of individual requests, e.g. 512Kb, 80Mb, 1Gb (default: {DEFAULT_OBJECT_SIZE})')
        parser.add_argument('--numClients', type=int, default=DEFAULT_NUM_CLIENTS,
                            help=f'number of concurrent clients (default: {DEFAULT_NUM_CLIENTS})')
        parser.add_argument('--numSamples', type=int, default=DEFAULT_NUM_SAMPLES,
                            help=f'total number of requests to send (default: {DEFAULT_NUM_SAMPLES})')
        parser.add_argument('--skipCleanup', action='store_true',
                            help='skip deleting objects created by this tool at the end of the run')
        parser.add_argument('--verbose', action='store_true',
                            help='print verbose per request status')
        parser.add_argument('--headObj', action='store_true',
                            help='head-object request instead of reading obj content')
        parser.add_argument('--sampleReads', type=int, default=DEFAULT_SAMPLE_READS,
                            help='number of reads of each sample')
        parser.add_argument('--clientDelay', type=int, default=DEFAULT_CLIENT_DELAY_MS,
                            help='delay in ms before client starts. if negative value provided '
                                 'delay will be randomized in interval [0, abs{clientDelay})')
        parser.add_argument('--jsonOutput', action='store_true',
                            help='print results in form of json')
        parser.add_argument('--deleteAtOnce', type=int, default=DEFAULT_DELETE_AT_ONCE,
                            help='number of objs to delete at once')
        parser.add_argument('--putObjTag', action='store_true',
                            help="put object's tags")
        parser.add_argument('--getObjTag', action='store_true',
                            help="get object's tags")
        parser.add_argument('--numTags', type=int, default=DEFAULT_NUM_TAGS,
                            help='number of tags to create, for objects it should in range [1..10]')
        parser.add_argument('--tagNamePrefix', type=str, default=DEFAULT_TAG_NAME_PREFIX,
                            help='prefix of the tag name that will be used')
        parser.add_argument('--tagValPrefix', type=str, default=DEFAULT_TAG_VAL_PREFIX,
                            help='prefix of the tag value that will be used')
        parser.add_argument('--version', action='store_true',
                            help='print version info')
        parser.add_argument('--reportFormat', type=str, default=DEFAULT_REPORT_FORMAT,
                            help='rearrange output fields')
        parser.add_argument('--validate', action='store_true',
                            help='validate stored data')
        parser.add_argument('--skipWrite', action='store_true',
                            help='do not run Write test')
        parser.add_argument('--skipRead', action='store_true',
                            help='do not run Read test')

        return parser

    def build_params(self, args) -> BenchmarkParams:
        """Validate parsed arguments and build the benchmark parameters.

        Raises:
            ValueError: If an argument is out of range
        """
        if args.numClients > args.numSamples or args.numSamples < 1:
            raise ValueError(
                f"numClients({args.numClients}) needs to be less than "
                f"numSamples({args.numSamples}) and greater than 0"
            )
        if args.numClients < 1:
            raise ValueError("numClients needs to be greater than 0")
        if not args.endpoint:
            raise ValueError("You need to specify endpoint(s)")
        if args.deleteAtOnce < 1:
            raise ValueError("Cannot delete less than 1 obj at once")
        if args.numTags < 1:
            raise ValueError("--numTags cannot be less than 1")
        if args.sampleReads < 1:
            raise ValueError("--sampleReads cannot be less than 1")

        return BenchmarkParams.create(
            endpoints=[endpoint.strip() for endpoint in args.endpoint.split(",")],
            put_obj_tag=args.putObjTag,
            get_obj_tag=args.getObjTag,
            head_obj=args.headObj,
            skip_read=args.skipRead,
            bucket_name=args.bucket,
            object_name_prefix=args.objectNamePrefix,
            object_size=parse_size(args.objectSize),
            num_clients=args.numClients,
            num_samples=args.numSamples,
            sample_reads=args.sampleReads,
            client_delay=args.clientDelay,
            delete_at_once=args.deleteAtOnce,
            num_tags=args.numTags,
            tag_name_prefix=args.tagNamePrefix,
            tag_val_prefix=args.tagValPrefix,
            report_format=args.reportFormat,
            verbose=args.verbose,
            json_output=args.jsonOutput,
            validate=args.validate,
            skip_write=args.skipWrite,
            skip_cleanup=args.skipCleanup,
            region=args.region,
            access_key=args.accessKey,
            access_secret=args.accessSecret,
        )

    async def run_benchmark(self, params: BenchmarkParams):
        """Run all enabled batches and print the report."""
        from s3bench.benchmark import BenchmarkRunner
        from s3bench.report import build_report, print_report

        runner = BenchmarkRunner(params)
        results = await runner.run_benchmark()
        print_report(build_report(params, results), params)

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if parsed_args.version:
            print(__version__)
            return 0

        setup_logging(parsed_args.verbose)

        try:
            params = self.build_params(parsed_args)
        except ValueError as e:
            logger.error(str(e))
            self.parser.print_usage(sys.stderr)
            return 1

        try:
            uvloop.run(self.run_benchmark(params))
            return 0
        except KeyboardInterrupt:
            logger.info("Benchmark interrupted by user")
            return 1
        except Exception as e:
            logger.error(f"Benchmark failed: {e}", exc_info=True)
            return 1


def main():
    """Main entry point."""
    cli = S3BenchCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
