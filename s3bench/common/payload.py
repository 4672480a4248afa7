"""
Shared write payload, its digest and object naming.
"""

import base64
import hashlib
import logging
import os
import re
import time
from typing import Optional

logger = logging.getLogger(__name__)

# Object names look like "<prefix>_<base32 sha512 of payload>_<index>"
_OBJECT_NAME_PATTERN = re.compile(r"^.*_([A-Z2-7]+)_[0-9]+$")


def to_b32(data: bytes) -> str:
    """Base32 encode without padding."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def from_b32(text: str) -> bytes:
    """Decode unpadded base32."""
    return base64.b32decode(text + "=" * (-len(text) % 8))


def object_name(prefix: str, digest_b32: str, index: int) -> str:
    return f"{prefix}_{digest_b32}_{index}"


def digest_from_object_name(name: str) -> str:
    """Extract the base32 payload digest from an object name.

    Raises:
        ValueError: If the name was not produced by object_name()
    """
    match = _OBJECT_NAME_PATTERN.match(name)
    if not match:
        raise ValueError(f"Invalid object name format: {name}")
    return match.group(1)


def new_hasher():
    return hashlib.sha512()


class Payload:
    """Write buffer and its SHA-512 digest, shared read-only by all workers.

    A payload recovered from an existing bucket carries only the digest.
    """

    def __init__(self, data: Optional[bytes], digest: bytes):
        self.data = data
        self.digest = digest
        self.digest_b32 = to_b32(digest)

    @classmethod
    def generate(cls, size: int) -> "Payload":
        """Generate a random in-memory payload of the given size."""
        logger.info(f"Generating {size} bytes of in-memory sample data...")
        start_time = time.time()
        data = os.urandom(size)
        payload = cls(data, hashlib.sha512(data).digest())
        logger.info(f"Done ({time.time() - start_time:.3f}s)")
        return payload

    @classmethod
    def from_digest_b32(cls, digest_b32: str) -> "Payload":
        """Payload known only by digest, for runs that skip the write batch."""
        return cls(None, from_b32(digest_b32))

    @property
    def size(self) -> int:
        return len(self.data) if self.data is not None else 0

    def object_name(self, prefix: str, index: int) -> str:
        return object_name(prefix, self.digest_b32, index)
