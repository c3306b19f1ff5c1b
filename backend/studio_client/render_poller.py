"""
Client-side render polling.

Polls GET /render-status every 5 seconds until the render finishes. The
interval backs off when the API reports rate limiting (at least retryAfter,
or 1.5x) or when requests fail (2x), never beyond 20 seconds, and drops back
to 5 seconds after a normal response.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import structlog

from studio_client.api import StudioClient
from studio_client.errors import StudioAPIError, UnauthorizedError
from video_schemas import RenderStatusResponse

logger = structlog.get_logger(__name__)

RENDER_POLL_INTERVAL = 5.0
MAX_RENDER_POLL_INTERVAL = 20.0
RATE_LIMIT_BACKOFF = 1.5
ERROR_BACKOFF = 2.0


class RenderOutcome(str, Enum):
    COMPLETE = "complete"
    FAILED = "failed"
    TIMEOUT = "timeout"
    STALLED = "stalled"
    STOPPED = "stopped"
    UNAUTHORIZED = "unauthorized"


class RenderPoller:
    """
    Example:
        >>> poller = RenderPoller(client, project_id, render_id, bucket_name)
        >>> outcome = await poller.run()
    """

    def __init__(
        self,
        client: StudioClient,
        project_id: str,
        render_id: str,
        bucket_name: Optional[str] = None,
        base_interval: float = RENDER_POLL_INTERVAL,
        max_interval: float = MAX_RENDER_POLL_INTERVAL,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.client = client
        self.project_id = project_id
        self.render_id = render_id
        self.bucket_name = bucket_name
        self.base_interval = base_interval
        self.max_interval = max_interval
        self.sleep = sleep or client.sleep
        self.interval = base_interval
        # Every wait actually scheduled, in order
        self.intervals: List[float] = []
        self.polls = 0
        self.last_response: Optional[RenderStatusResponse] = None
        self.outcome: Optional[RenderOutcome] = None
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self.logger = logger.bind(project_id=project_id, render_id=render_id)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> asyncio.Task:
        """Run in the background; the returned task resolves to the outcome."""
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self.run())
        return self._task

    def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _backoff(self, interval: float) -> None:
        self.interval = min(interval, self.max_interval)

    async def run(self) -> RenderOutcome:
        try:
            outcome = await self._loop()
        except asyncio.CancelledError:
            self.outcome = RenderOutcome.STOPPED
            raise
        self.outcome = outcome
        self.logger.info("render_polling_finished", outcome=outcome.value, polls=self.polls)
        return outcome

    async def _loop(self) -> RenderOutcome:
        while not self._stopped:
            self.polls += 1
            try:
                response = await self.client.get_render_status(self.project_id, self.render_id, self.bucket_name)
            except UnauthorizedError:
                return RenderOutcome.UNAUTHORIZED
            except StudioAPIError as e:
                if self._stopped:
                    break
                if e.status == 429:
                    self._backoff(max(e.retry_after or 0, self.interval * RATE_LIMIT_BACKOFF))
                elif e.is_server_error:
                    self._backoff(self.interval * ERROR_BACKOFF)
                else:
                    self.client.notifier.error("Render Failed", e.message)
                    return RenderOutcome.FAILED
                self.logger.warning("render_status_request_failed", status=e.status, next_interval=self.interval)
            else:
                if self._stopped:
                    # Response arrived after stop(); ignore it
                    break
                outcome = self._handle(response)
                if outcome is not None:
                    return outcome

            self.intervals.append(self.interval)
            await self.sleep(self.interval)

        return RenderOutcome.STOPPED

    def _handle(self, response: RenderStatusResponse) -> Optional[RenderOutcome]:
        self.last_response = response
        if response.project is not None:
            self.client.state.replace(response.project)

        if response.rateLimited:
            self._backoff(max(response.retryAfter or 0, self.interval * RATE_LIMIT_BACKOFF))
            self.logger.info("render_status_rate_limited", next_interval=self.interval)
            return None
        self.interval = self.base_interval

        if response.done and not response.errors:
            self.client.notifier.success("Video Complete!", "Your video has been rendered successfully.")
            return RenderOutcome.COMPLETE

        if response.timeout:
            outcome = RenderOutcome.TIMEOUT
        elif response.stalled:
            outcome = RenderOutcome.STALLED
        elif response.errors or response.done:
            outcome = RenderOutcome.FAILED
        else:
            return None

        description = response.errors[0] if response.errors else (response.message or "The render did not finish.")
        self.client.notifier.error("Render Failed", description)
        return outcome
