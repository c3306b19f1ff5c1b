"""
Client-side polling of per-scene video regeneration jobs.

Each scene gets its own poll; polls for different scenes run independently
and whichever finishes last wins the local project state. stop_all() is the
"editor closed" hook: it cancels every poll and late responses are dropped.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

import structlog

from studio_client.api import StudioClient
from studio_client.errors import StudioAPIError, UnauthorizedError
from video_schemas import TERMINAL_JOB_STATUSES, VideoJobStatus

logger = structlog.get_logger(__name__)

JOB_POLL_INTERVAL = 5.0
MAX_JOB_POLLS = 120  # ~10 minutes at the default interval


class JobOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    STOPPED = "stopped"


class _Watch:
    def __init__(self, project_id: str, scene_id: str, job_id: str):
        self.project_id = project_id
        self.scene_id = scene_id
        self.job_id = job_id
        self.stopped = False
        self.task: Optional[asyncio.Task] = None


class VideoJobPoller:
    def __init__(
        self,
        client: StudioClient,
        interval: float = JOB_POLL_INTERVAL,
        max_polls: int = MAX_JOB_POLLS,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.client = client
        self.interval = interval
        self.max_polls = max_polls
        self.sleep = sleep or client.sleep
        self._watches: Dict[str, _Watch] = {}

    @property
    def active_scenes(self):
        return [scene_id for scene_id, watch in self._watches.items() if not watch.stopped]

    def watch(self, project_id: str, scene_id: str, job_id: str) -> asyncio.Task:
        """
        Start polling a job in the background. A newer job for the same
        scene replaces the older poll.
        """
        self.stop(scene_id)
        watch = _Watch(project_id, scene_id, job_id)
        self._watches[scene_id] = watch
        watch.task = asyncio.ensure_future(self._run(watch))
        return watch.task

    async def poll(self, project_id: str, scene_id: str, job_id: str) -> JobOutcome:
        """Poll in the foreground until the job ends or the poll cap is hit."""
        self.stop(scene_id)
        watch = _Watch(project_id, scene_id, job_id)
        self._watches[scene_id] = watch
        return await self._run(watch)

    def stop(self, scene_id: str) -> None:
        watch = self._watches.pop(scene_id, None)
        if watch is None:
            return
        watch.stopped = True
        if watch.task is not None and not watch.task.done():
            watch.task.cancel()

    def stop_all(self) -> None:
        for scene_id in list(self._watches):
            self.stop(scene_id)

    async def _run(self, watch: _Watch) -> JobOutcome:
        log = logger.bind(project_id=watch.project_id, scene_id=watch.scene_id, job_id=watch.job_id)
        try:
            outcome = await self._loop(watch, log)
        except asyncio.CancelledError:
            log.info("video_job_poll_cancelled")
            raise
        finally:
            if self._watches.get(watch.scene_id) is watch:
                del self._watches[watch.scene_id]
        log.info("video_job_poll_finished", outcome=outcome.value)
        return outcome

    async def _loop(self, watch: _Watch, log) -> JobOutcome:
        for _ in range(self.max_polls):
            if watch.stopped:
                return JobOutcome.STOPPED
            try:
                response = await self.client.get_video_job(watch.project_id, watch.scene_id, watch.job_id)
            except UnauthorizedError:
                return JobOutcome.STOPPED
            except StudioAPIError as e:
                if watch.stopped:
                    return JobOutcome.STOPPED
                if e.status == 404:
                    self.client.notifier.error("Video regeneration failed", e.message)
                    return JobOutcome.FAILED
                log.warning("video_job_poll_error", status=e.status, error=e.message)
            else:
                if watch.stopped:
                    # Response arrived after the poll was cancelled
                    return JobOutcome.STOPPED
                job = response.job
                if job.status in TERMINAL_JOB_STATUSES:
                    return self._finish(job.status, response, watch)

            await self.sleep(self.interval)

        self.client.notifier.error(
            "Video regeneration timed out",
            "The video is taking longer than expected. Check back later.",
        )
        return JobOutcome.TIMED_OUT

    def _finish(self, status: VideoJobStatus, response, watch: _Watch) -> JobOutcome:
        if status == VideoJobStatus.SUCCEEDED:
            if response.project is not None:
                self.client.state.replace(response.project)
            self.client.notifier.success("Video regenerated", "The new clip is now the scene background.")
            return JobOutcome.SUCCEEDED
        if status == VideoJobStatus.FAILED:
            self.client.notifier.error(
                "Video regeneration failed",
                response.job.errorMessage or "The video provider could not generate a clip.",
            )
            return JobOutcome.FAILED
        return JobOutcome.CANCELLED
