"""
Async S3-compatible object storage client bound to a single endpoint.
"""

import logging
import os
from typing import Iterable, List, Sequence, Tuple

import aioboto3
import psutil
from botocore.config import Config
from botocore.exceptions import ClientError

from s3bench.configuration import CONNECT_TIMEOUT_SECONDS, READ_TIMEOUT_SECONDS
from s3bench.common.payload import digest_from_object_name

logger = logging.getLogger(__name__)

# Error codes meaning the bucket is already there
BUCKET_EXISTS_CODES = ("BucketAlreadyOwnedByYou", "BucketAlreadyExists")


class ObjectStorageSystem:
    """Async client for one endpoint of an S3-compatible object storage."""

    def __init__(self, endpoint: str, bucket_name: str, credentials: dict):
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.credentials = credentials

        self._config = self._create_config()

        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=credentials.get("region_name"),
        )

        self.client = None
        self._client_context = None

    def _create_config(self) -> Config:
        """Create the botocore config.

        Retries are disabled so that every failed request is reported as is,
        and checksums are only computed where the API requires them.
        """
        return Config(
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=READ_TIMEOUT_SECONDS,
            retries={
                'max_attempts': 1,
                'mode': 'standard',
            },
            s3={
                'payload_signing_enabled': False,  # UNSIGNED-PAYLOAD
                'addressing_style': 'path',
            },
            request_checksum_calculation='when_required',
            response_checksum_validation='when_required',
            tcp_keepalive=True,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self._client_context = self.session.client(
            "s3",
            endpoint_url=self.endpoint,
            config=self._config,
        )
        self.client = await self._client_context.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._client_context:
            await self._client_context.__aexit__(exc_type, exc_val, exc_tb)
            self._client_context = None
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return self.client

    @staticmethod
    def get_connection_count() -> int:
        """Get number of established inet connections of this process."""
        try:
            connections = psutil.Process(os.getpid()).net_connections(kind='inet')
        except psutil.Error as e:
            logger.debug(f"Failed to get connection count: {e}")
            return -1
        return sum(1 for c in connections if c.status == psutil.CONN_ESTABLISHED)

    # -------------------------------------------------------------------------
    # Benchmark operations
    # -------------------------------------------------------------------------

    async def put_object(self, key: str, data: bytes) -> int:
        """Upload an object and return the number of bytes written."""
        await self._require_client().put_object(
            Bucket=self.bucket_name, Key=key, Body=data
        )
        return len(data)

    async def get_object(self, key: str):
        """Start downloading an object.

        Returns once the response headers arrived; the returned body stream
        is an async context manager with an async read(amt) method.
        """
        response = await self._require_client().get_object(
            Bucket=self.bucket_name, Key=key
        )
        return response["Body"]

    async def head_object(self, key: str) -> int:
        """Return the content length of an object."""
        response = await self._require_client().head_object(
            Bucket=self.bucket_name, Key=key
        )
        return response["ContentLength"]

    async def put_object_tagging(self, key: str, tags: Sequence[Tuple[str, str]]) -> None:
        await self._require_client().put_object_tagging(
            Bucket=self.bucket_name,
            Key=key,
            Tagging={"TagSet": [{"Key": name, "Value": value} for name, value in tags]},
        )

    async def get_object_tagging(self, key: str) -> None:
        await self._require_client().get_object_tagging(
            Bucket=self.bucket_name, Key=key
        )

    # -------------------------------------------------------------------------
    # Bucket setup and cleanup
    # -------------------------------------------------------------------------

    async def create_bucket(self) -> bool:
        """Create the bucket.

        Returns:
            True if the bucket was created, False if it already existed

        Raises:
            ClientError: For any other failure
        """
        try:
            await self._require_client().create_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code in BUCKET_EXISTS_CODES:
                logger.info(f"Bucket {self.bucket_name} already exists")
                return False
            raise
        logger.info(f"Created bucket {self.bucket_name}")
        return True

    async def delete_bucket(self) -> None:
        await self._require_client().delete_bucket(Bucket=self.bucket_name)

    async def delete_object_tagging(self, key: str) -> None:
        await self._require_client().delete_object_tagging(
            Bucket=self.bucket_name, Key=key
        )

    async def delete_objects(self, keys: Iterable[str]) -> int:
        """Delete a batch of objects in one request and return the batch size."""
        objects: List[dict] = [{"Key": key} for key in keys]
        await self._require_client().delete_objects(
            Bucket=self.bucket_name, Delete={"Objects": objects}
        )
        return len(objects)

    async def find_object_digest(self, prefix: str) -> str:
        """Recover the payload digest from the first object stored under prefix.

        Raises:
            ValueError: If there is no such object or its name is malformed
        """
        response = await self._require_client().list_objects_v2(
            Bucket=self.bucket_name, MaxKeys=1, Prefix=prefix
        )
        contents = response.get("Contents", [])
        if not contents:
            raise ValueError("Empty bucket")
        return digest_from_object_name(contents[0]["Key"])
