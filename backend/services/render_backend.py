"""
Render backend abstraction.

A backend starts a render for a project and reports its progress. Rate
limiting is reported with RateLimitedError so the status endpoint can tell
the client to back off instead of failing the render.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import structlog

from config import settings
from pipeline.error_handler import ProviderError, RateLimitedError
from video_schemas import RenderProgress, VideoProject

logger = structlog.get_logger()


class RenderBackend(ABC):
    @abstractmethod
    async def start_render(self, project: VideoProject) -> Tuple[str, str]:
        """
        Start rendering a project.

        Returns:
            (render_id, bucket_name)

        Raises:
            ProviderError: If the render could not be started
        """
        pass

    @abstractmethod
    async def get_progress(self, render_id: str, bucket_name: str) -> RenderProgress:
        """
        Raises:
            RateLimitedError: If the backend asked us to slow down
            ProviderError: For any other status-check failure
        """
        pass


class MockRenderBackend(RenderBackend):
    """
    Advances each render by MOCK_RENDER_PROGRESS_STEP per status check.

    Injected failures (MOCK_FAILING_PROVIDERS):
        render              start_render fails
        render-status       status checks fail
        render-rate-limit   status checks are rate limited
        render-error        the render reports an error
    """

    def __init__(self, step: Optional[float] = None):
        self._step = step if step is not None else settings.MOCK_RENDER_PROGRESS_STEP
        self._progress: Dict[str, float] = {}
        self._lock = threading.Lock()

    async def start_render(self, project: VideoProject) -> Tuple[str, str]:
        if "render" in settings.failing_providers:
            raise ProviderError("render", "Mock render start failure (injected)")
        render_id = f"render_{uuid.uuid4().hex[:12]}"
        with self._lock:
            self._progress[render_id] = 0.0
        logger.info("mock_render_started", project_id=project.id, render_id=render_id)
        return render_id, settings.RENDER_BUCKET_NAME

    async def get_progress(self, render_id: str, bucket_name: str) -> RenderProgress:
        failing = settings.failing_providers
        if "render-rate-limit" in failing:
            raise RateLimitedError("render", retry_after=settings.RENDER_RETRY_AFTER_SECONDS)
        if "render-status" in failing:
            raise ProviderError("render", "Mock render status failure (injected)", retryable=True)
        if "render-error" in failing:
            return RenderProgress(done=False, overallProgress=0.0, errors=["Mock render error (injected)"])

        with self._lock:
            progress = self._progress.get(render_id, 0.0)
            progress = min(1.0, progress + self._step)
            self._progress[render_id] = progress

        if progress >= 1.0:
            return RenderProgress(
                done=True,
                overallProgress=1.0,
                outputFile=f"{settings.MOCK_ASSET_BASE_URL}/{bucket_name}/renders/{render_id}/out.mp4",
            )
        return RenderProgress(done=False, overallProgress=progress)


_render_backend: Optional[RenderBackend] = None


def get_render_backend() -> RenderBackend:
    global _render_backend
    if _render_backend is None:
        _render_backend = MockRenderBackend()
    return _render_backend


def set_render_backend(backend: Optional[RenderBackend]) -> None:
    global _render_backend
    _render_backend = backend
