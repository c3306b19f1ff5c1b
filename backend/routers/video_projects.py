"""
Video Projects API Router.

Project lifecycle endpoints: create (product or script input), list, get,
delete, asset generation, status reset and undo/redo history.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends

from config import settings
from pipeline.error_handler import ErrorCode, InvalidStateError, StudioError
from routers.dependencies import (
    current_user_id,
    get_provider_set,
    get_renderer,
    get_store,
    load_project,
    to_http_exception,
)
from services.project_store import ProjectStore
from services.providers import ProviderSet
from services.render_backend import RenderBackend
from studio import history as project_history
from studio.progress import reset_render_progress
from studio.project_factory import build_product_project, build_script_project
from video_schemas import (
    DeleteProjectResponse,
    GenerateAssetsRequest,
    HistoryResponse,
    ProductVideoRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatus,
    ScriptVideoRequest,
    ServiceStatusResponse,
    UndoRedoResponse,
)
from workers.generation_worker import process_generation_job

logger = structlog.get_logger()

router = APIRouter(prefix="/api/video", tags=["Video Projects"])


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """List the caller's projects, newest first."""
    try:
        projects = store.list_for_owner(user_id)
    except StudioError as e:
        raise to_http_exception(e)
    return ProjectListResponse(projects=projects)


@router.post("/projects/product", response_model=ProjectResponse, status_code=201)
async def create_product_project(
    request: ProductVideoRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Create a product marketing video project.

    The script is written immediately; the project starts in `draft` with
    its scenes in place and the script step complete. Call generate-assets
    to produce voiceover, visuals and music.
    """
    try:
        drafts = await providers.script_writer.write_product_script(
            product_name=request.productName,
            product_description=request.productDescription,
            benefits=request.benefits,
            target_audience=request.targetAudience,
            call_to_action=request.callToAction,
            duration=request.duration,
            style=request.style,
        )
        project = build_product_project(request, user_id, drafts)
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info(
        "video_project_created",
        project_id=project.id,
        project_type=project.type,
        scene_count=len(project.scenes),
        owner_id=user_id,
    )
    return ProjectResponse(project=project, message=f"Created project with {len(project.scenes)} scenes")


@router.post("/projects/script", response_model=ProjectResponse, status_code=201)
async def create_script_project(
    request: ScriptVideoRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Create a project from a written script. Paragraphs (or "Scene N:"
    headings) become scenes.
    """
    try:
        drafts = await providers.script_writer.parse_script(
            title=request.title,
            script=request.script,
            style=request.style,
            target_duration=request.targetDuration,
        )
        project = build_script_project(request, user_id, drafts)
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info(
        "video_project_created",
        project_id=project.id,
        project_type=project.type,
        scene_count=len(project.scenes),
        owner_id=user_id,
    )
    return ProjectResponse(project=project, message=f"Created project with {len(project.scenes)} scenes")


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        status = project_history.history_status(store.get_history(project_id))
    except StudioError as e:
        raise to_http_exception(e)
    return ProjectResponse(project=project, historyStatus=status)


@router.delete("/projects/{project_id}", response_model=DeleteProjectResponse)
async def delete_project(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        load_project(store, project_id, user_id)
        store.delete(project_id)
    except StudioError as e:
        raise to_http_exception(e)
    logger.info("video_project_deleted", project_id=project_id, owner_id=user_id)
    return DeleteProjectResponse(projectId=project_id)


@router.post("/projects/{project_id}/generate-assets", response_model=ProjectResponse, status_code=202)
async def generate_assets(
    project_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[GenerateAssetsRequest] = None,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """
    Start asset generation in the background.

    Poll GET /projects/{id} for per-step progress. Returns 409 while a
    generation is already running.
    """
    request = request or GenerateAssetsRequest()
    try:
        project = load_project(store, project_id, user_id)
        if project.status == ProjectStatus.GENERATING:
            raise InvalidStateError(
                "Asset generation is already in progress",
                code=ErrorCode.ALREADY_GENERATING,
                details={"projectId": project_id},
            )
        if project.status == ProjectStatus.RENDERING:
            raise InvalidStateError(
                "Cannot regenerate assets while the project is rendering",
                details={"projectId": project_id, "status": project.status.value},
            )
        project.status = ProjectStatus.GENERATING
        project.progress.errors = []
        project.touch()
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    background_tasks.add_task(
        process_generation_job,
        project_id,
        skip_music=request.skipMusic,
        skip_analysis=request.skipAnalysis,
    )
    logger.info("asset_generation_queued", project_id=project_id, skip_music=request.skipMusic)
    return ProjectResponse(project=project, message="Asset generation started")


@router.post("/projects/{project_id}/reset-status", response_model=ProjectResponse)
async def reset_project_status(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """
    Recover a project stuck in `generating` or `rendering`.

    Goes back to `ready` (or `draft` when there are no scenes) with render
    bookkeeping and errors cleared.
    """
    try:
        project = load_project(store, project_id, user_id)
        previous = project.status
        reset_render_progress(project)
        project.status = ProjectStatus.READY if project.scenes else ProjectStatus.DRAFT
        project.renderId = None
        project.bucketName = None
        project.outputUrl = None
        project.progress.errors = []
        project.progress.currentStep = "qa" if project.scenes else "idle"
        project.progress.overallPercent = 85 if project.scenes else 0
        project.touch()
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("project_status_reset", project_id=project_id, previous=previous.value, status=project.status.value)
    return ProjectResponse(project=project, message=f"Status reset from {previous.value} to {project.status.value}")


@router.post("/projects/{project_id}/undo", response_model=UndoRedoResponse)
async def undo_edit(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = store.get_history(project_id)
        action = project_history.undo(history, project)
        store.save(project)
        store.save_history(project_id, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("edit_undone", project_id=project_id, action=action)
    return UndoRedoResponse(
        undoneAction=action,
        historyStatus=project_history.history_status(history),
        project=project,
    )


@router.post("/projects/{project_id}/redo", response_model=UndoRedoResponse)
async def redo_edit(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = store.get_history(project_id)
        action = project_history.redo(history, project)
        store.save(project)
        store.save_history(project_id, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("edit_redone", project_id=project_id, action=action)
    return UndoRedoResponse(
        redoneAction=action,
        historyStatus=project_history.history_status(history),
        project=project,
    )


@router.get("/projects/{project_id}/history", response_model=HistoryResponse)
async def get_history_status(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        load_project(store, project_id, user_id)
        status = project_history.history_status(store.get_history(project_id))
    except StudioError as e:
        raise to_http_exception(e)
    return HistoryResponse(**status.model_dump())


@router.get("/service-status", response_model=ServiceStatusResponse)
async def service_status(
    providers: ProviderSet = Depends(get_provider_set),
    renderer: RenderBackend = Depends(get_renderer),
):
    """
    Which provider backs each generation service, and whether failures are
    being injected into it.
    """
    failing = settings.failing_providers
    services = {
        "script": {"provider": type(providers.script_writer).__name__},
        "voiceover": {"provider": type(providers.voiceover).__name__},
        "image": {"provider": type(providers.image).__name__, "fallback": type(providers.stock_image).__name__},
        "video": {"provider": type(providers.video).__name__, "fallback": "image"},
        "music": {"provider": type(providers.music).__name__},
        "analysis": {"provider": type(providers.analyzer).__name__},
        "render": {"provider": type(renderer).__name__},
    }
    for name, info in services.items():
        info["available"] = name not in failing
    if any(kind.startswith("render-") for kind in failing):
        services["render"]["available"] = False
    return ServiceStatusResponse(services=services)

