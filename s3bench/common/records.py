"""
Data structures for benchmark requests, responses and results.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union


class Operation(str, enum.Enum):
    """Operation kinds, one benchmark batch each."""

    WRITE = "Write"
    READ = "Read"
    HEAD_OBJ = "HeadObj"
    PUT_OBJ_TAG = "PutObjTag"
    GET_OBJ_TAG = "GetObjTag"
    VALIDATE = "Validate"

    def __str__(self) -> str:
        return self.value

    @property
    def moves_bytes(self) -> bool:
        """True for operations whose throughput is reported."""
        return self in (Operation.WRITE, Operation.READ, Operation.VALIDATE)


class IntegrityError(Exception):
    """Data read back from storage does not match what was written."""


class ObjectSizeMismatch(IntegrityError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"expected object length {expected}, actual {actual}")
        self.expected = expected
        self.actual = actual


class ChecksumMismatch(IntegrityError):
    def __init__(self, actual_b32: str, expected_b32: str):
        super().__init__(
            f"Read data checksum {actual_b32} is not eq to write data checksum {expected_b32}"
        )
        self.actual_b32 = actual_b32
        self.expected_b32 = expected_b32


# Requests: one variant per operation kind. The payload of a write request
# is the shared buffer, never a copy.

@dataclass(frozen=True)
class WriteRequest:
    key: str
    payload: bytes = b""

    operation = Operation.WRITE

    def __repr__(self) -> str:
        return f"WriteRequest(key={self.key!r}, size={len(self.payload)})"


@dataclass(frozen=True)
class ReadRequest:
    key: str

    operation = Operation.READ


@dataclass(frozen=True)
class ValidateRequest:
    key: str

    operation = Operation.VALIDATE


@dataclass(frozen=True)
class HeadRequest:
    key: str

    operation = Operation.HEAD_OBJ


@dataclass(frozen=True)
class PutTagsRequest:
    key: str
    tags: Tuple[Tuple[str, str], ...] = ()

    operation = Operation.PUT_OBJ_TAG


@dataclass(frozen=True)
class GetTagsRequest:
    key: str

    operation = Operation.GET_OBJ_TAG


Request = Union[
    WriteRequest, ReadRequest, ValidateRequest, HeadRequest, PutTagsRequest, GetTagsRequest
]


@dataclass(frozen=True)
class Response:
    """Outcome of one request as measured by a worker.

    Durations are in seconds. ``error`` is None on success.
    """

    error: Optional[Exception]
    duration: float
    ttfb: float
    num_bytes: int = 0


@dataclass(frozen=True)
class Result:
    """Summary of one operation batch.

    ``op_durations`` and ``op_ttfb`` hold successful requests only and are
    sorted ascending.
    """

    operation: Operation
    bytes_transmitted: int
    op_durations: Tuple[float, ...]
    op_ttfb: Tuple[float, ...]
    op_errors: Tuple[str, ...]
    total_duration: float

    @property
    def total_requests(self) -> int:
        return len(self.op_durations) + len(self.op_errors)
