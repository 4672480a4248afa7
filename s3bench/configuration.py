"""
Configuration for the s3bench load generator.

This module contains:
- Cloud credentials and endpoints read from the environment
- Default test parameters used by the command line
- Size constants and the object size parser
- The immutable BenchmarkParams value shared by every worker
"""

import os
import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from s3bench.common.records import Operation

# =============================================================================
# CLOUD STORAGE CONFIGURATION
# =============================================================================

BUCKET_NAME: str = os.getenv("BUCKET_NAME", "bucketname")
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "igneous-test")

# =============================================================================
# TEST PARAMETERS
# =============================================================================

DEFAULT_OBJECT_NAME_PREFIX: str = "loadgen_test"
DEFAULT_OBJECT_SIZE: str = "80Mb"
DEFAULT_NUM_CLIENTS: int = 40
DEFAULT_NUM_SAMPLES: int = 200
DEFAULT_SAMPLE_READS: int = 1
DEFAULT_CLIENT_DELAY_MS: int = 1  # Negative values randomize in [0, abs(delay))
DEFAULT_DELETE_AT_ONCE: int = 1000
DEFAULT_NUM_TAGS: int = 10
DEFAULT_TAG_NAME_PREFIX: str = "tag_name_"
DEFAULT_TAG_VAL_PREFIX: str = "tag_val_"

# Report fields to bring to the front ("key") or hide ("-key"),
# "parent:key" applies to nested mappings
DEFAULT_REPORT_FORMAT: str = (
    "Version;Parameters;Parameters:numClients;Parameters:numSamples;"
    "Parameters:objectSize (MB);Parameters:sampleReads;Parameters:clientDelay;"
    "Parameters:readObj;Parameters:headObj;Parameters:putObjTag;Parameters:getObjTag;"
    "Tests:Operation;Tests:Total Requests Count;Tests:Errors Count;"
    "Tests:Total Throughput (MB/s);Tests:Duration Max;Tests:Duration Avg;"
    "Tests:Duration Min;Tests:Ttfb Max;Tests:Ttfb Avg;Tests:Ttfb Min;"
    "-Tests:Duration 25th-ile;-Tests:Duration 50th-ile;-Tests:Duration 75th-ile;"
    "-Tests:Ttfb 25th-ile;-Tests:Ttfb 50th-ile;-Tests:Ttfb 75th-ile;"
)

# =============================================================================
# STORAGE CLIENT
# =============================================================================

CONNECT_TIMEOUT_SECONDS: int = 5
READ_TIMEOUT_SECONDS: int = 120
READ_CHUNK_SIZE: int = 1024 * 1024  # Body is drained in 1 MB chunks

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024
BYTES_PER_MB: int = 1024 * 1024
BYTES_PER_GB: int = 1024 * 1024 * 1024
MILLISECONDS_PER_SECOND: int = 1000

SIZE_MULTIPLIERS: Dict[str, int] = {
    "b": 1,
    "Kb": BYTES_PER_KB,
    "Mb": BYTES_PER_MB,
    "Gb": BYTES_PER_GB,
}

_SIZE_PATTERN = re.compile(r"^(\d+)([bKMG]{1,2})$")


def parse_size(size: str) -> int:
    """Convert a size string such as '80Mb' or '512Kb' to bytes.

    Raises:
        ValueError: If the string is not a number followed by b, Kb, Mb or Gb
    """
    match = _SIZE_PATTERN.match(size)
    if not match:
        raise ValueError(f"Invalid objectSize value format: {size!r}")
    multiplier = SIZE_MULTIPLIERS.get(match.group(2))
    if multiplier is None:
        raise ValueError(f"Invalid objectSize value: {size!r}")
    return int(match.group(1)) * multiplier


@dataclass(frozen=True)
class BenchmarkParams:
    """Parameters of one benchmark invocation.

    Built once by the command line and shared read-only by every worker.
    """

    endpoints: Tuple[str, ...]
    bucket_name: str = BUCKET_NAME
    object_name_prefix: str = DEFAULT_OBJECT_NAME_PREFIX
    object_size: int = 80 * BYTES_PER_MB
    num_clients: int = DEFAULT_NUM_CLIENTS
    num_samples: int = DEFAULT_NUM_SAMPLES
    sample_reads: int = DEFAULT_SAMPLE_READS
    client_delay: int = DEFAULT_CLIENT_DELAY_MS
    delete_at_once: int = DEFAULT_DELETE_AT_ONCE
    num_tags: int = DEFAULT_NUM_TAGS
    tag_name_prefix: str = DEFAULT_TAG_NAME_PREFIX
    tag_val_prefix: str = DEFAULT_TAG_VAL_PREFIX
    report_format: str = DEFAULT_REPORT_FORMAT
    verbose: bool = False
    json_output: bool = False
    head_obj: bool = False
    put_obj_tag: bool = False
    get_obj_tag: bool = False
    read_obj: bool = True
    validate: bool = False
    skip_write: bool = False
    skip_read: bool = False
    skip_cleanup: bool = False
    region: str = AWS_REGION
    access_key: str = AWS_ACCESS_KEY_ID
    access_secret: str = AWS_SECRET_ACCESS_KEY

    @classmethod
    def create(cls, endpoints, put_obj_tag=False, get_obj_tag=False, head_obj=False,
               skip_read=False, **kwargs) -> "BenchmarkParams":
        """Build parameters applying the flag implications.

        Getting tags needs tags to be put first, and the read batch only runs
        when no head or tagging batch was requested.
        """
        put_obj_tag = put_obj_tag or get_obj_tag
        read_obj = not (put_obj_tag or get_obj_tag or head_obj) and not skip_read
        return cls(
            endpoints=tuple(endpoints),
            put_obj_tag=put_obj_tag,
            get_obj_tag=get_obj_tag,
            head_obj=head_obj,
            read_obj=read_obj,
            skip_read=skip_read,
            **kwargs,
        )

    def operations(self) -> List[Operation]:
        """Enabled operation batches in execution order."""
        enabled = [
            (not self.skip_write, Operation.WRITE),
            (self.put_obj_tag, Operation.PUT_OBJ_TAG),
            (self.get_obj_tag, Operation.GET_OBJ_TAG),
            (self.head_obj, Operation.HEAD_OBJ),
            (self.read_obj, Operation.READ),
            (self.validate, Operation.VALIDATE),
        ]
        return [op for is_enabled, op in enabled if is_enabled]

    def credentials(self) -> Dict[str, str]:
        return {
            "access_key_id": self.access_key,
            "secret_access_key": self.access_secret,
            "region_name": self.region,
        }

    def report_directives(self) -> List[str]:
        return self.report_format.split(";")

