"""
Async worker pool executing benchmark requests against object storage.

Workers share two unbounded queues: requests flow in from the job generator,
timed responses flow out to the batch aggregator.
"""

import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Type

from s3bench.configuration import (
    BenchmarkParams,
    MILLISECONDS_PER_SECOND,
    READ_CHUNK_SIZE,
)
from s3bench.common.payload import Payload, new_hasher, to_b32
from s3bench.common.records import (
    ChecksumMismatch,
    GetTagsRequest,
    HeadRequest,
    ObjectSizeMismatch,
    PutTagsRequest,
    ReadRequest,
    Request,
    Response,
    ValidateRequest,
    WriteRequest,
)
from s3bench.common.storage_factory import create_storage_system

logger = logging.getLogger(__name__)

# Placed on the request queue once per worker to stop it
_SHUTDOWN = None


class WorkerFailure:
    """Pushed to the response queue when a worker task dies unexpectedly."""

    def __init__(self, task_name: str, error: BaseException):
        self.task_name = task_name
        self.error = error


class RequestTimer:
    """Measures total duration and time to first byte of one request."""

    def __init__(self):
        self.start = time.perf_counter()
        self.ttfb: Optional[float] = None

    def mark_first_byte(self) -> None:
        if self.ttfb is None:
            self.ttfb = time.perf_counter() - self.start

    def elapsed(self) -> float:
        return time.perf_counter() - self.start


class WorkerPool:
    """Fixed pool of async workers, one storage client each."""

    def __init__(
        self,
        params: BenchmarkParams,
        payload: Payload,
        storage_factory: Callable = create_storage_system,
    ):
        """Initialize the worker pool.

        Args:
            params: Benchmark parameters, shared read-only
            payload: Shared write buffer and digest
            storage_factory: Callable (params, endpoint) -> storage client
        """
        self.params = params
        self.payload = payload
        self.storage_factory = storage_factory

        self.requests: asyncio.Queue = asyncio.Queue()
        self.responses: asyncio.Queue = asyncio.Queue()
        self.worker_tasks: List[asyncio.Task] = []
        self.is_running = False

        self._handlers: Dict[Type, Callable[..., Awaitable[int]]] = {
            WriteRequest: self._put_object,
            ReadRequest: self._read_object,
            ValidateRequest: self._validate_object,
            HeadRequest: self._head_object,
            PutTagsRequest: self._put_object_tagging,
            GetTagsRequest: self._get_object_tagging,
        }

    def startup_delay(self) -> float:
        """Seconds to wait before starting the next worker."""
        delay_ms = self.params.client_delay
        if delay_ms > 0:
            return delay_ms / MILLISECONDS_PER_SECOND
        if delay_ms < 0:
            return random.randrange(-delay_ms) / MILLISECONDS_PER_SECOND
        return 0.0

    async def start_clients(self) -> None:
        """Start one worker per client, staggered by the configured delay.

        Worker i talks to endpoints[i % len(endpoints)].
        """
        endpoints = self.params.endpoints
        logger.info(
            f"Starting {self.params.num_clients} clients against {len(endpoints)} endpoint(s)"
        )
        self.is_running = True

        for worker_id in range(self.params.num_clients):
            endpoint = endpoints[worker_id % len(endpoints)]
            task = asyncio.create_task(
                self._worker_task(worker_id, endpoint), name=f"worker-{worker_id}"
            )
            self.watch(task)
            self.worker_tasks.append(task)

            delay = self.startup_delay()
            if delay > 0:
                await asyncio.sleep(delay)

        logger.info(f"Worker pool ready: {len(self.worker_tasks)} workers")

    async def stop_clients(self) -> None:
        """Stop all workers once they have drained the request queue."""
        if not self.is_running:
            return

        logger.info("Stopping worker pool...")
        for _ in self.worker_tasks:
            await self.requests.put(_SHUTDOWN)
        await asyncio.gather(*self.worker_tasks, return_exceptions=True)

        self.worker_tasks.clear()
        self.is_running = False
        logger.info("Worker pool stopped")

    async def submit(self, requests: Iterable[Request]) -> None:
        """Feed requests to the shared queue."""
        for request in requests:
            await self.requests.put(request)

    async def next_response(self) -> Response:
        """Wait for the next response from any worker.

        Raises:
            Exception: The error that killed a worker task
        """
        item = await self.responses.get()
        if isinstance(item, WorkerFailure):
            logger.error(f"Aborting batch: {item.task_name} failed")
            raise item.error
        return item

    def watch(self, task: asyncio.Task) -> None:
        """Report the failure of task to whoever waits for responses."""
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"{task.get_name()} fatal error: {error!r}")
            self.responses.put_nowait(WorkerFailure(task.get_name(), error))

    async def _worker_task(self, worker_id: int, endpoint: str) -> None:
        """Execute requests until the shutdown marker arrives."""
        storage = self.storage_factory(self.params, endpoint)
        logger.debug(f"Worker {worker_id} bound to {endpoint}")
        async with storage:
            while True:
                request = await self.requests.get()
                if request is _SHUTDOWN:
                    break
                response = await self.execute(storage, request)
                await self.responses.put(response)

    async def execute(self, storage, request: Request) -> Response:
        """Run one request and measure it.

        Storage and integrity errors are captured in the response.

        Raises:
            TypeError: If the request kind is unknown
        """
        handler = self._handlers.get(type(request))
        if handler is None:
            raise TypeError(f"Unsupported request: {request!r}")

        timer = RequestTimer()
        try:
            num_bytes = await handler(storage, request, timer)
            error = None
        except Exception as e:
            logger.debug(f"{request.operation} {request.key} failed: {e!r}")
            num_bytes = 0
            error = e
        timer.mark_first_byte()
        return Response(error, timer.elapsed(), timer.ttfb, num_bytes)

    async def _put_object(self, storage, request: WriteRequest, timer: RequestTimer) -> int:
        num_bytes = await storage.put_object(request.key, request.payload)
        timer.mark_first_byte()
        return num_bytes

    async def _drain_object(self, storage, key: str, timer: RequestTimer, hasher=None) -> int:
        """Download an object, feeding its bytes to hasher if given.

        Raises:
            ObjectSizeMismatch: If the body length differs from the object size
        """
        body = await storage.get_object(key)
        timer.mark_first_byte()
        num_bytes = 0
        async with body:
            while True:
                chunk = await body.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                num_bytes += len(chunk)
                if hasher is not None:
                    hasher.update(chunk)
        if num_bytes != self.params.object_size:
            raise ObjectSizeMismatch(self.params.object_size, num_bytes)
        return num_bytes

    async def _read_object(self, storage, request: ReadRequest, timer: RequestTimer) -> int:
        return await self._drain_object(storage, request.key, timer)

    async def _validate_object(self, storage, request: ValidateRequest, timer: RequestTimer) -> int:
        hasher = new_hasher()
        num_bytes = await self._drain_object(storage, request.key, timer, hasher)
        digest = hasher.digest()
        if digest != self.payload.digest:
            raise ChecksumMismatch(to_b32(digest), self.payload.digest_b32)
        return num_bytes

    async def _head_object(self, storage, request: HeadRequest, timer: RequestTimer) -> int:
        content_length = await storage.head_object(request.key)
        timer.mark_first_byte()
        if content_length != self.params.object_size:
            raise ObjectSizeMismatch(self.params.object_size, content_length)
        return 0

    async def _put_object_tagging(self, storage, request: PutTagsRequest, timer: RequestTimer) -> int:
        await storage.put_object_tagging(request.key, request.tags)
        timer.mark_first_byte()
        return 0

    async def _get_object_tagging(self, storage, request: GetTagsRequest, timer: RequestTimer) -> int:
        await storage.get_object_tagging(request.key)
        timer.mark_first_byte()
        return 0
