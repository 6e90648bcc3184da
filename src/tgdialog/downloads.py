"""Priority download queue that reports completion as FILE_UPDATED events.

begin() resolves the file through the Bot API (so lookup failures reach the
caller) and enqueues the download. Worker tasks pull the highest-priority
job, download it to the download directory, and dispatch a FileUpdate;
the routing layer resolves the waiter with the local path, or fails it
with the transfer error.

Key classes: FileDownloader, DownloadJob.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path

from telegram import Bot, File
from telegram.error import TelegramError

from .dispatcher import EventDispatcher
from .events import FileUpdate

logger = logging.getLogger(__name__)

# Same range as TDLib download priorities; higher is served first
MIN_PRIORITY = 1
MAX_PRIORITY = 32
DEFAULT_PRIORITY = 1

_DownloadError = (TelegramError, OSError)


@dataclass(order=True)
class DownloadJob:
    """Queue entry; ordering is (-priority, sequence) so ties stay FIFO."""

    sort_key: tuple[int, int]
    file_id: str = field(compare=False)
    file: File = field(compare=False)


class FileDownloader:
    """Downloads Telegram files on a fixed pool of worker tasks."""

    def __init__(
        self,
        bot: Bot,
        dispatcher: EventDispatcher,
        download_dir: Path,
        workers: int = 2,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be positive")
        self._bot = bot
        self._dispatcher = dispatcher
        self.download_dir = Path(download_dir)
        self.workers = workers
        self._queue: asyncio.PriorityQueue[DownloadJob] | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._sequence = itertools.count()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def _get_queue(self) -> asyncio.PriorityQueue[DownloadJob]:
        # Created lazily so the queue binds to the running loop
        if self._queue is None:
            self._queue = asyncio.PriorityQueue()
        return self._queue

    def start(self) -> None:
        if self._tasks:
            return
        self.download_dir.mkdir(parents=True, exist_ok=True)
        queue = self._get_queue()
        self._tasks = [
            asyncio.create_task(self._worker(queue, n), name=f"download-worker-{n}")
            for n in range(self.workers)
        ]
        logger.info("Started %d download workers -> %s", self.workers, self.download_dir)

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info("Download workers stopped")

    async def begin(self, file_id: str, priority: int = DEFAULT_PRIORITY) -> None:
        """Resolve ``file_id`` and queue its download at ``priority``."""
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise ValueError(
                f"priority must be in {MIN_PRIORITY}..{MAX_PRIORITY}, got {priority}"
            )
        tg_file = await self._bot.get_file(file_id)
        job = DownloadJob((-priority, next(self._sequence)), file_id, tg_file)
        self._get_queue().put_nowait(job)
        logger.debug("Queued download of %s (priority=%d)", file_id, priority)

    def target_path(self, job: DownloadJob) -> Path:
        name = Path(job.file.file_path or "").name or job.file_id
        return self.download_dir / f"{job.file.file_unique_id}_{name}"

    async def _download(self, job: DownloadJob) -> None:
        try:
            path = await job.file.download_to_drive(self.target_path(job))
        except _DownloadError as e:
            logger.error("Download of %s failed: %s", job.file_id, e)
            self._dispatcher.dispatch(
                FileUpdate(job.file_id, is_complete=False, error=e)
            )
            return
        logger.debug("Downloaded %s to %s", job.file_id, path)
        self._dispatcher.dispatch(FileUpdate(job.file_id, str(path), is_complete=True))

    async def _worker(self, queue: asyncio.PriorityQueue[DownloadJob], n: int) -> None:
        logger.debug("Download worker %d started", n)
        while True:
            job = await queue.get()
            try:
                await self._download(job)
            except Exception:
                # Worker survives listener errors
                logger.exception("Unexpected error handling download %s", job.file_id)
            finally:
                queue.task_done()
