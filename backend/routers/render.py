"""
Render API Router.

Starting a render is gated by the quality gate. Render status is pulled
from the render backend on each poll and folded into the project.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query

from pipeline.error_handler import ErrorCode, InvalidStateError, ProviderError, StudioError, ValidationError
from routers.dependencies import (
    current_user_id,
    get_renderer,
    get_store,
    load_project,
    to_http_exception,
)
from services.project_store import ProjectStore
from services.render_backend import RenderBackend
from studio import quality_gate, render_tracker
from studio.progress import record_service_failure
from video_schemas import (
    ProjectStatus,
    RenderRequest,
    RenderStartResponse,
    RenderStatusResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/video/projects/{project_id}", tags=["Render"])


@router.post("/render", response_model=RenderStartResponse, status_code=202)
async def start_render(
    project_id: str,
    request: Optional[RenderRequest] = None,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    renderer: RenderBackend = Depends(get_renderer),
):
    """
    Start the final render.

    Refused (400) unless the quality gate allows it; `force` overrides score,
    issue-count and review blocks but never rejected or unanalyzed scenes.
    """
    force = request.force if request else False
    try:
        project = load_project(store, project_id, user_id)
        if project.status in (ProjectStatus.GENERATING, ProjectStatus.RENDERING):
            raise InvalidStateError(
                f"Cannot start a render while the project is {project.status.value}",
                details={"projectId": project_id, "status": project.status.value},
            )
        if not project.scenes:
            raise ValidationError("Project has no scenes to render", field="scenes")

        report = quality_gate.generate_report(project)
        allowed, reason = quality_gate.can_proceed_to_render(report, force=force)
        if not allowed:
            raise InvalidStateError(
                f"Quality gate blocked render: {reason}",
                code=ErrorCode.QUALITY_GATE_BLOCKED,
                details={"blockingReasons": report.blockingReasons, "overallScore": report.overallScore},
            )

        try:
            render_id, bucket_name = await render_tracker.start_render(project, renderer)
        except ProviderError as e:
            record_service_failure(project, "render", e.message)
            store.save(project)
            raise
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    return RenderStartResponse(renderId=render_id, bucketName=bucket_name, project=project)


@router.get("/render-status", response_model=RenderStatusResponse)
async def get_render_status(
    project_id: str,
    render_id: Optional[str] = Query(None, alias="renderId"),
    bucket_name: Optional[str] = Query(None, alias="bucketName"),
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    renderer: RenderBackend = Depends(get_renderer),
):
    """
    Check render progress once.

    Flags in the response tell the poller how to react: `rateLimited` with
    `retryAfter` seconds, `timeout`, `stalled`, or `done`. Without a
    renderId the stored project state is returned.
    """
    try:
        project = load_project(store, project_id, user_id)
        response, changed = await render_tracker.check_render_status(project, renderer, render_id, bucket_name)
        if changed:
            store.save(project)
    except StudioError as e:
        raise to_http_exception(e)
    return response
