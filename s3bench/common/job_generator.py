"""
Request generation for a single operation batch.
"""

import logging
from typing import Iterator, Tuple

from s3bench.configuration import BenchmarkParams
from s3bench.common.payload import Payload
from s3bench.common.records import (
    Operation,
    Request,
    WriteRequest,
    ReadRequest,
    ValidateRequest,
    HeadRequest,
    PutTagsRequest,
    GetTagsRequest,
)

logger = logging.getLogger(__name__)

# Operations that touch every object exactly once; the rest repeat
# sample_reads times over the same object set.
SINGLE_PASS_OPERATIONS = (Operation.WRITE, Operation.PUT_OBJ_TAG, Operation.VALIDATE)


def samples_per_operation(operation: Operation, params: BenchmarkParams) -> int:
    """Number of requests in the batch for an operation."""
    if operation not in list(Operation):
        raise ValueError(f"Unsupported operation: {operation!r}")
    if operation in SINGLE_PASS_OPERATIONS:
        return params.num_samples
    return params.num_samples * params.sample_reads


def build_tag_set(params: BenchmarkParams) -> Tuple[Tuple[str, str], ...]:
    return tuple(
        (f"{params.tag_name_prefix}{i}", f"{params.tag_val_prefix}{i}")
        for i in range(params.num_tags)
    )


def generate_requests(
    operation: Operation, params: BenchmarkParams, payload: Payload
) -> Iterator[Request]:
    """Yield the requests of one batch.

    Request i targets object i % num_samples, so repeated reads cycle
    through the same objects.

    Raises:
        ValueError: If the operation is not a known kind
    """
    op_samples = samples_per_operation(operation, params)
    tags = build_tag_set(params) if operation == Operation.PUT_OBJ_TAG else ()

    for i in range(op_samples):
        key = payload.object_name(params.object_name_prefix, i % params.num_samples)
        if operation == Operation.WRITE:
            yield WriteRequest(key, payload.data)
        elif operation == Operation.READ:
            yield ReadRequest(key)
        elif operation == Operation.VALIDATE:
            yield ValidateRequest(key)
        elif operation == Operation.HEAD_OBJ:
            yield HeadRequest(key)
        elif operation == Operation.PUT_OBJ_TAG:
            yield PutTagsRequest(key, tags)
        elif operation == Operation.GET_OBJ_TAG:
            yield GetTagsRequest(key)
        else:
            raise ValueError(f"Unsupported operation: {operation!r}")
