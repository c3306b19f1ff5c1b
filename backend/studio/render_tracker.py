"""
Render lifecycle: starting a render and turning backend status checks into
project state transitions (done, error, stalled, timed out, rate limited).

Times are epoch seconds and persisted on the project, so timeouts keep
working across API restarts.
"""

import time
from typing import Optional, Tuple

import structlog

from config import settings
from pipeline.error_handler import ProviderError, RateLimitedError
from services.render_backend import RenderBackend
from studio.progress import record_service_failure, reset_render_progress, update_render_progress
from video_schemas import (
    ProjectStatus,
    RenderStatusResponse,
    StepState,
    VideoProject,
)

logger = structlog.get_logger()

RENDER_SERVICE = "render"


def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


def _rendering_fraction(project: VideoProject) -> float:
    return project.progress.steps["rendering"].progress / 100


def _fail_render(project: VideoProject, step_message: str, *errors: str) -> None:
    project.status = ProjectStatus.ERROR
    step = project.progress.steps["rendering"]
    step.status = StepState.ERROR
    step.message = step_message
    project.progress.errors.extend(errors)
    project.touch()


async def start_render(
    project: VideoProject,
    backend: RenderBackend,
    now: Optional[float] = None,
) -> Tuple[str, str]:
    """
    Kick off a render and move the project to `rendering`.

    Raises:
        ProviderError: If the backend could not start the render
    """
    render_id, bucket_name = await backend.start_render(project)
    started = _now(now)

    reset_render_progress(project)
    project.status = ProjectStatus.RENDERING
    project.renderId = render_id
    project.bucketName = bucket_name
    project.outputUrl = None
    project.progress.errors = []
    project.progress.renderStartedAt = started
    project.progress.lastProgressValue = 0
    project.progress.lastProgressUpdateAt = started
    update_render_progress(project, 0.0, "Render started")

    logger.info("render_started", project_id=project.id, render_id=render_id, bucket_name=bucket_name)
    return render_id, bucket_name


def current_state(project: VideoProject) -> RenderStatusResponse:
    """Status built from the stored project alone (no backend call)."""
    return RenderStatusResponse(
        success=True,
        done=project.status in (ProjectStatus.COMPLETE, ProjectStatus.ERROR),
        progress=_rendering_fraction(project),
        outputUrl=project.outputUrl,
        errors=list(project.progress.errors),
        project=project,
    )


async def check_render_status(
    project: VideoProject,
    backend: RenderBackend,
    render_id: Optional[str],
    bucket_name: Optional[str] = None,
    now: Optional[float] = None,
) -> Tuple[RenderStatusResponse, bool]:
    """
    Poll the backend once and apply the result to the project.

    Returns:
        (response, changed) where `changed` means the project must be saved

    Raises:
        ProviderError: Status check failed before the status-failure timeout
    """
    if not render_id:
        return current_state(project), False

    if project.status == ProjectStatus.COMPLETE and project.renderId == render_id:
        return current_state(project), False

    current = _now(now)
    bucket = bucket_name or project.bucketName or settings.RENDER_BUCKET_NAME
    changed = False

    started = project.progress.renderStartedAt
    if started is None:
        # Render started before start times were recorded
        started = current
        project.progress.renderStartedAt = started
        changed = True
    elapsed = current - started

    if elapsed > settings.RENDER_TIMEOUT_SECONDS and project.status == ProjectStatus.RENDERING:
        minutes = round(elapsed / 60)
        _fail_render(
            project,
            f"Render timed out after {minutes} minutes",
            "Render timed out - the render backend may have exceeded its time limit",
        )
        record_service_failure(project, RENDER_SERVICE, "Render timeout - please try again with a shorter video or fewer scenes")
        logger.warning("render_timeout", project_id=project.id, render_id=render_id, elapsed=round(elapsed))
        return RenderStatusResponse(
            success=False,
            done=False,
            progress=_rendering_fraction(project),
            errors=["Render timed out. The video may be too complex. Please try again."],
            project=project,
            timeout=True,
        ), True

    try:
        status = await backend.get_progress(render_id, bucket)
    except RateLimitedError as e:
        logger.info("render_status_rate_limited", project_id=project.id, retry_after=e.retry_after)
        return RenderStatusResponse(
            success=True,
            done=False,
            progress=_rendering_fraction(project),
            project=project,
            rateLimited=True,
            retryAfter=e.retry_after or settings.RENDER_RETRY_AFTER_SECONDS,
        ), changed
    except ProviderError as e:
        logger.error("render_status_check_failed", project_id=project.id, render_id=render_id, error=e.message)
        if elapsed > settings.RENDER_STATUS_FAILURE_SECONDS:
            _fail_render(
                project,
                "Unable to get render status - render may have failed",
                f"Render status check failed: {e.message}",
            )
            return RenderStatusResponse(
                success=False,
                done=False,
                progress=_rendering_fraction(project),
                errors=[f"Render status check failed: {e.message}"],
                project=project,
                message=e.message,
                timeout=True,
            ), True
        raise

    if status.errors:
        _fail_render(project, status.errors[0], *status.errors)
        logger.warning("render_failed", project_id=project.id, render_id=render_id, errors=status.errors)
        return RenderStatusResponse(
            success=False,
            done=True,
            progress=status.overallProgress,
            errors=list(status.errors),
            project=project,
        ), True

    if status.done:
        project.status = ProjectStatus.COMPLETE
        step = project.progress.steps["rendering"]
        step.status = StepState.COMPLETE
        step.progress = 100
        step.message = "Render complete"
        project.progress.overallPercent = 100
        project.outputUrl = status.outputFile
        project.touch()
        logger.info("render_complete", project_id=project.id, render_id=render_id, output_url=status.outputFile)
        return RenderStatusResponse(
            success=True,
            done=True,
            progress=1.0,
            outputUrl=status.outputFile,
            project=project,
        ), True

    percent = round(status.overallProgress * 100)
    last_value = project.progress.lastProgressValue or 0
    last_update = project.progress.lastProgressUpdateAt or started

    if percent == last_value and percent > 0:
        stall_time = current - last_update
        if stall_time > settings.RENDER_STALL_SECONDS:
            _fail_render(
                project,
                f"Render stalled at {percent}% - the render backend may have stopped unexpectedly",
                "Render stalled - the render backend may have terminated. Please retry.",
            )
            record_service_failure(project, RENDER_SERVICE, "Render stalled - no progress for 3+ minutes")
            logger.warning("render_stalled", project_id=project.id, render_id=render_id, progress=percent)
            return RenderStatusResponse(
                success=False,
                done=False,
                progress=percent / 100,
                errors=["Render stalled - the render stopped unexpectedly. Please retry the render."],
                project=project,
                stalled=True,
            ), True
    elif percent != last_value:
        project.progress.lastProgressValue = percent
        project.progress.lastProgressUpdateAt = current

    update_render_progress(project, status.overallProgress, f"Rendering {percent}%")
    return RenderStatusResponse(
        success=True,
        done=False,
        progress=status.overallProgress,
        project=project,
    ), True
