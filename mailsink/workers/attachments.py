"""
Attachment Worker Pool

Background workers that extract attachments from completed bodies.

Sessions hand finished bodies to a bounded queue and move on; a small
pool of tasks drains the queue and runs the extractor in a thread so
disk writes never stall the event loop. Stopping the pool waits for
every queued body to be processed.
"""

import asyncio
from typing import List, Optional, Sequence

from mailsink.core.logging import get_logger
from mailsink.smtp.processor import AttachmentExtractor

logger = get_logger(__name__)


class AttachmentWorkerPool:
    """
    Bounded work queue consumed by a fixed number of worker tasks.
    """

    def __init__(self, extractor: AttachmentExtractor, workers: int = 2, queue_size: int = 100):
        self.extractor = extractor
        self.workers = workers
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._tasks: List[asyncio.Task] = []
        self.running = False

    @property
    def pending(self) -> int:
        """Bodies waiting for a worker."""
        return self.queue.qsize()

    async def start(self):
        """Spawn the worker tasks."""
        if self.running:
            return
        logger.info(f"Starting {self.workers} attachment workers (output: {self.extractor.output_dir})")
        self.running = True
        self._tasks = [
            asyncio.create_task(self._worker(n), name=f"attachment-worker-{n}")
            for n in range(self.workers)
        ]

    async def submit(self, body_lines: Sequence[str]):
        """
        Queue a completed body for extraction.

        Waits for a free slot when the queue is full.

        Args:
            body_lines: Raw body lines of one message
        """
        await self.queue.put(list(body_lines))

    async def stop(self):
        """
        Drain the queue, then stop the workers.
        """
        if not self.running:
            return
        logger.info(f"Stopping attachment workers ({self.pending} bodies pending)...")
        await self.queue.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.running = False
        logger.info("Attachment workers stopped")

    async def _worker(self, number: int):
        while True:
            body_lines = await self.queue.get()
            try:
                saved = await asyncio.to_thread(self.extractor.process_body, body_lines)
                logger.debug(f"Worker {number} processed body ({len(body_lines)} lines, {len(saved)} saved)")
            except Exception as e:
                logger.error(f"Attachment processing failed: {str(e)}", exc_info=True)
            finally:
                self.queue.task_done()


def create_attachment_pool(settings) -> Optional[AttachmentWorkerPool]:
    """
    Build the worker pool when attachment saving is enabled.

    Returns:
        AttachmentWorkerPool: pool, or None if saving is disabled
    """
    if not settings.SAVE_ATTACHMENTS:
        return None
    extractor = AttachmentExtractor(settings.ATTACHMENT_DIR)
    return AttachmentWorkerPool(
        extractor,
        workers=settings.ATTACHMENT_WORKERS,
        queue_size=settings.ATTACHMENT_QUEUE_SIZE,
    )
