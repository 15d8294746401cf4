"""HookDispatcher - bounded queues between the webhook routes and the processor.

Routes validate a hook, submit it, and answer immediately. A fixed pool of
worker threads drains the queues into the HookProcessor. Each worker owns
one queue and every hook for an agent goes to the same worker, so one
agent's hooks are processed one at a time in arrival order. A full queue
is refused rather than buffered without bound, and shutdown drains what
was accepted.
"""

import logging
import queue
import threading
import zlib
from dataclasses import dataclass

from agent_dashboard.models.hook import HookEventKind, HookPayload
from agent_dashboard.services.hook_processor import HookProcessor

logger = logging.getLogger(__name__)

_STOP = object()


class DispatchQueueFullError(Exception):
    """Raised when the hook queue cannot accept more events."""


class DispatcherClosedError(Exception):
    """Raised when submitting to a dispatcher that is shutting down."""


@dataclass
class HookJob:
    """One accepted hook event waiting to be processed."""

    kind: HookEventKind
    payload: HookPayload


class HookDispatcher:
    """Runs hook processing on worker threads with bounded per-worker queues."""

    def __init__(self, processor: HookProcessor, workers: int = 4, queue_size: int = 1000):
        """Initialize the dispatcher. Workers start on start().

        Args:
            processor: The processor jobs are handed to.
            workers: Number of worker threads.
            queue_size: Maximum queued jobs, split evenly across the workers.
        """
        self._processor = processor
        self._worker_count = max(1, workers)
        shard_size = max(1, queue_size // self._worker_count)
        self._queues: list[queue.Queue] = [
            queue.Queue(maxsize=shard_size) for _ in range(self._worker_count)
        ]
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._accepting = False

    def start(self) -> None:
        """Start the worker threads."""
        with self._lock:
            if self._threads:
                return
            self._accepting = True
            for i, job_queue in enumerate(self._queues):
                thread = threading.Thread(
                    target=self._worker_loop,
                    args=(job_queue,),
                    name=f"hook-worker-{i}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)
        logger.info(f"Started {self._worker_count} hook worker(s)")

    def worker_index(self, agent_id: str) -> int:
        """Get the worker that processes hooks for `agent_id`."""
        return zlib.crc32(agent_id.encode("utf-8")) % self._worker_count

    def submit(self, kind: HookEventKind, payload: HookPayload) -> None:
        """Queue a hook event without blocking.

        Raises:
            DispatcherClosedError: If the dispatcher is not running.
            DispatchQueueFullError: If the agent's worker queue is full.
        """
        with self._lock:
            if not self._accepting:
                raise DispatcherClosedError("Hook dispatcher is not accepting events")
        job_queue = self._queues[self.worker_index(payload.agent_id)]
        try:
            job_queue.put_nowait(HookJob(kind=kind, payload=payload))
        except queue.Full as e:
            raise DispatchQueueFullError("Hook queue full") from e

    def join(self) -> None:
        """Block until every queued job has been processed."""
        for job_queue in self._queues:
            job_queue.join()

    def shutdown(self, drain: bool = True, timeout: float | None = 10.0) -> None:
        """Stop accepting events and stop the workers.

        Args:
            drain: Process the jobs already queued before stopping.
                When False, queued jobs are discarded.
            timeout: Seconds to wait for each worker to finish.
        """
        with self._lock:
            if not self._accepting and not self._threads:
                return
            self._accepting = False
            threads = list(self._threads)
            self._threads = []

        if not drain:
            discarded = 0
            for job_queue in self._queues:
                while True:
                    try:
                        job_queue.get_nowait()
                    except queue.Empty:
                        break
                    job_queue.task_done()
                    discarded += 1
            if discarded:
                logger.warning(f"Discarded {discarded} queued hook event(s) on shutdown")

        if threads:
            for job_queue in self._queues:
                job_queue.put(_STOP)
        for thread in threads:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"{thread.name} did not stop within {timeout}s")

        logger.info("Hook dispatcher stopped")

    def _worker_loop(self, job_queue: queue.Queue) -> None:
        while True:
            job = job_queue.get()
            try:
                if job is _STOP:
                    return
                self._processor.process(job.kind, job.payload)
            except Exception:
                logger.exception("Hook worker failed on job")
            finally:
                job_queue.task_done()

    @property
    def queue_depth(self) -> int:
        return sum(q.qsize() for q in self._queues)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._accepting

    def get_status(self) -> dict:
        return {
            "running": self.is_running,
            "workers": self._worker_count,
            "queueDepth": self.queue_depth,
            "queueCapacity": sum(q.maxsize for q in self._queues),
        }
