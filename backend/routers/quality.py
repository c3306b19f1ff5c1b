"""
Quality Gate API Router.

Scene analysis, the derived quality report, and the user's approve/reject
decisions that feed it. Scenes are addressed by index here, matching the
report's sceneStatuses.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from pipeline.asset_regenerator import analyze_scenes, regenerate_image
from pipeline.error_handler import ProviderError, StudioError
from routers.dependencies import (
    current_user_id,
    get_provider_set,
    get_store,
    load_project,
    record_history,
    save_with_history,
    to_http_exception,
)
from services.project_store import ProjectStore
from services.providers import ProviderSet
from studio import quality_gate
from studio.scene_graph import get_scene_by_index
from video_schemas import (
    ApproveAllResponse,
    AssetRegenerationResponse,
    CanRenderResponse,
    QualityReportResponse,
    RegenerateImageRequest,
    RejectSceneRequest,
    SceneReviewResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/video/projects/{project_id}", tags=["Quality Gate"])


@router.post("/analyze-quality", response_model=QualityReportResponse)
async def analyze_quality(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Analyze every scene and return the resulting report. Scenes whose
    analysis fails stay unanalyzed and block rendering.
    """
    try:
        project = load_project(store, project_id, user_id)
        analyzed = await analyze_scenes(project, providers.analyzer)
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    report = quality_gate.generate_report(project)
    logger.info("quality_analysis_complete", project_id=project_id, analyzed=analyzed, score=report.overallScore)
    return QualityReportResponse(report=report, project=project)


@router.get("/quality-report", response_model=QualityReportResponse)
async def get_quality_report(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
    except StudioError as e:
        raise to_http_exception(e)
    return QualityReportResponse(report=quality_gate.generate_report(project))


@router.get("/can-render", response_model=CanRenderResponse)
async def can_render(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
    except StudioError as e:
        raise to_http_exception(e)

    report = quality_gate.generate_report(project)
    allowed, reason = quality_gate.can_proceed_to_render(report)
    return CanRenderResponse(
        allowed=allowed,
        reason=reason,
        canRender=report.canRender,
        blockingReasons=report.blockingReasons,
        overallScore=report.overallScore,
        approvedCount=report.approvedCount,
        needsReviewCount=report.needsReviewCount,
        rejectedCount=report.rejectedCount,
    )


@router.post("/scenes/{scene_index}/approve", response_model=SceneReviewResponse)
async def approve_scene(
    project_id: str,
    scene_index: int,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        scene = get_scene_by_index(project, scene_index)
        quality_gate.approve_scene(scene)
        project.touch()
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("scene_approved", project_id=project_id, scene_index=scene_index, scene_id=scene.id)
    return SceneReviewResponse(sceneIndex=scene_index, approved=True, project=project)


@router.post("/scenes/{scene_index}/reject", response_model=SceneReviewResponse)
async def reject_scene(
    project_id: str,
    scene_index: int,
    request: Optional[RejectSceneRequest] = None,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        scene = get_scene_by_index(project, scene_index)
        quality_gate.reject_scene(scene, request.reason if request else None)
        project.touch()
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("scene_rejected", project_id=project_id, scene_index=scene_index, reason=scene.rejectionReason)
    return SceneReviewResponse(sceneIndex=scene_index, rejected=True, reason=scene.rejectionReason, project=project)


@router.post("/scenes/{scene_index}/regenerate", response_model=AssetRegenerationResponse)
async def regenerate_scene(
    project_id: str,
    scene_index: int,
    request: Optional[RegenerateImageRequest] = None,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Regenerate a rejected scene's image. The scene's analysis and approval
    are cleared, so it must be analyzed again before rendering.
    """
    try:
        project = load_project(store, project_id, user_id)
        scene = get_scene_by_index(project, scene_index)
        history = record_history(store, project, "Regenerate scene", ["scenes"])
        try:
            asset = await regenerate_image(
                project,
                scene.id,
                request.prompt if request else None,
                providers.image,
                providers.stock_image,
            )
        except ProviderError:
            store.save(project)
            raise
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    return AssetRegenerationResponse(url=asset.url, source=asset.source, project=project, historyStatus=status)


@router.post("/approve-all", response_model=ApproveAllResponse)
async def approve_all_scenes(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """Approve every scene the analysis marked for review."""
    try:
        project = load_project(store, project_id, user_id)
        count = quality_gate.approve_all(project)
        if count:
            store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("scenes_bulk_approved", project_id=project_id, count=count)
    return ApproveAllResponse(approvedCount=count, project=project)
