"""
Scene Editing API Router.

Edits to scenes and project assets. Every edit that can be undone snapshots
the project first (see routers.dependencies.record_history); the snapshot is
only persisted when the edit succeeds.
"""

import structlog
from fastapi import APIRouter, Depends

from pipeline.asset_regenerator import regenerate_image, regenerate_music, synthesize_voiceover
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
from studio import scene_graph
from studio.history import history_status
from video_schemas import (
    AssetRegenerationResponse,
    MusicVolumeRequest,
    NarrationUpdateRequest,
    ProductImageInput,
    ProductOverlayRequest,
    ProjectResponse,
    RegenerateImageRequest,
    RegenerateMusicRequest,
    RegenerateVoiceoverRequest,
    SceneOrderRequest,
    SetMediaRequest,
    VisualDirectionUpdateRequest,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/video/projects/{project_id}", tags=["Scene Editing"])


@router.patch("/reorder-scenes", response_model=ProjectResponse)
async def reorder_scenes(
    project_id: str,
    request: SceneOrderRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """
    Reorder scenes. `sceneOrder` must contain every scene id exactly once.
    """
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Reorder scenes", ["scenes", "sceneOrder"])
        scene_graph.reorder_scenes(project, request.sceneOrder)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("scenes_reordered", project_id=project_id, scene_order=project.sceneOrder)
    return ProjectResponse(project=project, historyStatus=status)


@router.patch("/scenes/{scene_id}/narration", response_model=ProjectResponse)
async def update_narration(
    project_id: str,
    scene_id: str,
    request: NarrationUpdateRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Edit narration", ["scenes"])
        scene_graph.update_narration(project, scene_id, request.narration)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("scene_narration_updated", project_id=project_id, scene_id=scene_id)
    return ProjectResponse(project=project, historyStatus=status)


@router.patch("/scenes/{scene_id}/visual-direction", response_model=ProjectResponse)
async def update_visual_direction(
    project_id: str,
    scene_id: str,
    request: VisualDirectionUpdateRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Edit visual direction", ["scenes"])
        scene_graph.update_visual_direction(project, scene_id, request.visualDirection)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("scene_visual_direction_updated", project_id=project_id, scene_id=scene_id)
    return ProjectResponse(project=project, historyStatus=status)


@router.patch("/scenes/{scene_id}/set-media", response_model=ProjectResponse)
async def set_scene_media(
    project_id: str,
    scene_id: str,
    request: SetMediaRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """
    Use a chosen image or video (e.g. from a stock search) as the scene
    background.
    """
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, f"Set scene {request.mediaType}", ["scenes"])
        scene_graph.set_scene_media(project, scene_id, request.mediaUrl, request.mediaType, request.source)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info(
        "scene_media_set",
        project_id=project_id,
        scene_id=scene_id,
        media_type=request.mediaType,
        source=request.source,
    )
    return ProjectResponse(project=project, historyStatus=status)


@router.patch("/scenes/{scene_id}/product-overlay", response_model=ProjectResponse)
async def update_product_overlay(
    project_id: str,
    scene_id: str,
    request: ProductOverlayRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Update product overlay", ["scenes"])
        scene_graph.update_product_overlay(
            project,
            scene_id,
            enabled=request.enabled,
            position=request.position,
            scale=request.scale,
            animation=request.animation,
            product_image_id=request.productImageId,
        )
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("product_overlay_updated", project_id=project_id, scene_id=scene_id, enabled=request.enabled)
    return ProjectResponse(project=project, historyStatus=status)


@router.post("/scenes/{scene_id}/regenerate-image", response_model=AssetRegenerationResponse)
async def regenerate_scene_image(
    project_id: str,
    scene_id: str,
    request: RegenerateImageRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Generate a new background image. Falls back to stock imagery when AI
    generation fails; 502 when both fail.
    """
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Regenerate image", ["scenes"])
        try:
            asset = await regenerate_image(
                project, scene_id, request.prompt, providers.image, providers.stock_image
            )
        except ProviderError:
            # Keep the service failure log even though the edit failed
            store.save(project)
            raise
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    return AssetRegenerationResponse(url=asset.url, source=asset.source, project=project, historyStatus=status)


@router.post("/regenerate-voiceover", response_model=AssetRegenerationResponse)
async def regenerate_voiceover(
    project_id: str,
    request: RegenerateVoiceoverRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Re-synthesize narration, optionally with a new voice and for a subset
    of scenes. The full track is always rebuilt.
    """
    try:
        project = load_project(store, project_id, user_id)
        duration = await synthesize_voiceover(project, providers.voiceover, request.voiceId, request.sceneIds)
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info(
        "voiceover_regenerated",
        project_id=project_id,
        voice_id=project.voiceId,
        scene_count=len(request.sceneIds) if request.sceneIds else len(project.scenes),
    )
    return AssetRegenerationResponse(
        url=project.assets.voiceover.fullTrackUrl,
        duration=duration,
        source=type(providers.voiceover).__name__,
        project=project,
    )


@router.post("/regenerate-music", response_model=AssetRegenerationResponse)
async def regenerate_project_music(
    project_id: str,
    request: RegenerateMusicRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    providers: ProviderSet = Depends(get_provider_set),
):
    try:
        project = load_project(store, project_id, user_id)
        asset = await regenerate_music(
            project,
            providers.music,
            style=request.musicStyle or request.style,
            mood=request.mood,
            custom_prompt=request.customPrompt,
        )
        store.save(project)
    except StudioError as e:
        raise to_http_exception(e)

    return AssetRegenerationResponse(url=asset.url, duration=asset.duration, source=asset.source, project=project)


@router.patch("/music-volume", response_model=ProjectResponse)
async def update_music_volume(
    project_id: str,
    request: MusicVolumeRequest,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Change music volume", ["assets"])
        scene_graph.update_music_volume(project, request.volume)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("music_volume_updated", project_id=project_id, volume=request.volume)
    return ProjectResponse(project=project, historyStatus=status)


@router.delete("/music", response_model=ProjectResponse)
async def remove_music(
    project_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Remove music", ["assets"])
        scene_graph.disable_music(project)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("music_disabled", project_id=project_id)
    return ProjectResponse(project=project, historyStatus=status, message="Background music removed")


@router.post("/product-images", response_model=ProjectResponse, status_code=201)
async def add_product_image(
    project_id: str,
    request: ProductImageInput,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    try:
        project = load_project(store, project_id, user_id)
        image = scene_graph.add_product_image(
            project, request.url, request.name, request.description, request.isPrimary
        )
        store.save(project)
        status = history_status(store.get_history(project_id))
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("product_image_added", project_id=project_id, image_id=image.id, primary=image.isPrimary)
    return ProjectResponse(project=project, historyStatus=status, message=f"Added product image {image.id}")


@router.delete("/product-images/{image_id}", response_model=ProjectResponse)
async def remove_product_image(
    project_id: str,
    image_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
):
    """
    Remove a product image; overlays that used it are switched off.
    """
    try:
        project = load_project(store, project_id, user_id)
        history = record_history(store, project, "Remove product image", ["assets", "scenes"])
        scene_graph.remove_product_image(project, image_id)
        status = save_with_history(store, project, history)
    except StudioError as e:
        raise to_http_exception(e)

    logger.info("product_image_removed", project_id=project_id, image_id=image_id)
    return ProjectResponse(project=project, historyStatus=status)
