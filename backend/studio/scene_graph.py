"""
Scene-level edits on a VideoProject.

Every function mutates the project in place and leaves it satisfying:
    scenes[i].order == i and sceneOrder == [s.id for s in scenes]
"""

from collections import Counter
from typing import List, Optional

import uuid

from pipeline.error_handler import (
    ErrorCode,
    ProductImageNotFoundError,
    SceneNotFoundError,
    ValidationError,
)
from video_schemas import (
    OverlayPosition,
    ProductImage,
    Scene,
    SceneBackground,
    VideoProject,
)


def normalize_order(project: VideoProject) -> VideoProject:
    for index, scene in enumerate(project.scenes):
        scene.order = index
    project.sceneOrder = [scene.id for scene in project.scenes]
    project.totalDuration = round(sum(scene.duration for scene in project.scenes), 2)
    project.touch()
    return project


def get_scene(project: VideoProject, scene_id: str) -> Scene:
    scene = project.find_scene(scene_id)
    if scene is None:
        raise SceneNotFoundError(scene_id, project.id)
    return scene


def get_scene_by_index(project: VideoProject, scene_index: int) -> Scene:
    if scene_index < 0 or scene_index >= len(project.scenes):
        raise SceneNotFoundError(scene_index, project.id)
    return project.scenes[scene_index]


def reorder_scenes(project: VideoProject, scene_order: List[str]) -> VideoProject:
    """
    Put scenes in the order given by `scene_order`.

    Raises:
        ValidationError: If scene_order is not a permutation of the scene ids;
            details list the missing, unknown and duplicate ids
    """
    existing = [scene.id for scene in project.scenes]
    existing_set = set(existing)
    counts = Counter(scene_order)

    missing = [sid for sid in existing if sid not in counts]
    unknown = [sid for sid in counts if sid not in existing_set]
    duplicates = [sid for sid, n in counts.items() if n > 1]

    if missing or unknown or duplicates:
        raise ValidationError(
            "Scene order must contain every scene exactly once",
            field="sceneOrder",
            details={
                "missingSceneIds": missing,
                "unknownSceneIds": unknown,
                "duplicateSceneIds": duplicates,
            },
            code=ErrorCode.INVALID_SCENE_ORDER,
        )

    by_id = {scene.id: scene for scene in project.scenes}
    project.scenes = [by_id[sid] for sid in scene_order]
    return normalize_order(project)


def update_narration(project: VideoProject, scene_id: str, narration: str) -> Scene:
    text = (narration or "").strip()
    if not text:
        raise ValidationError("Narration cannot be empty", field="narration")
    scene = get_scene(project, scene_id)
    scene.narration = text
    project.touch()
    return scene


def update_visual_direction(project: VideoProject, scene_id: str, visual_direction: str) -> Scene:
    scene = get_scene(project, scene_id)
    scene.visualDirection = (visual_direction or "").strip()
    project.touch()
    return scene


def set_scene_media(
    project: VideoProject,
    scene_id: str,
    media_url: str,
    media_type: str,
    source: str,
) -> Scene:
    """
    Replace a scene's background with a chosen image or video.

    A video clears the image background; an image also becomes
    assets.backgroundUrl. The existing prompt is kept either way.
    """
    if not media_url or not source:
        raise ValidationError("mediaUrl and source are required", field="mediaUrl")
    if media_type not in ("image", "video"):
        raise ValidationError("mediaType must be 'image' or 'video'", field="mediaType")

    scene = get_scene(project, scene_id)
    prompt = scene.background.prompt
    if media_type == "video":
        scene.background = SceneBackground(type="video", source=source, videoUrl=media_url, prompt=prompt)
        scene.assets.backgroundUrl = None
        scene.assets.videoUrl = media_url
    else:
        scene.background = SceneBackground(type="image", source=source, imageUrl=media_url, prompt=prompt)
        scene.assets.backgroundUrl = media_url
        scene.assets.imageUrl = media_url

    # New media invalidates the previous analysis
    scene.analysisResult = None
    scene.qualityScore = None
    scene.userApproved = False
    project.touch()
    return scene


def update_product_overlay(
    project: VideoProject,
    scene_id: str,
    enabled: bool,
    position: Optional[OverlayPosition] = None,
    scale: Optional[float] = None,
    animation: Optional[str] = None,
    product_image_id: Optional[str] = None,
) -> Scene:
    """
    Raises:
        ValidationError: For out-of-range scale, or enabling without a product image
        ProductImageNotFoundError: If product_image_id is unknown
    """
    if scale is not None and not (0 < scale <= 1):
        raise ValidationError("Overlay scale must be greater than 0 and at most 1", field="scale")

    scene = get_scene(project, scene_id)
    images = project.assets.productImages

    image: Optional[ProductImage] = None
    if product_image_id:
        image = next((img for img in images if img.id == product_image_id), None)
        if image is None:
            raise ProductImageNotFoundError(product_image_id)
    elif enabled:
        image = (
            next((img for img in images if img.id == scene.assets.assignedProductImageId), None)
            or next((img for img in images if img.isPrimary), None)
            or (images[0] if images else None)
        )
        if image is None:
            raise ValidationError("Add a product image before enabling the overlay", field="enabled")

    scene.assets.useProductOverlay = enabled
    if image is not None:
        scene.assets.productOverlayUrl = image.url
        scene.assets.assignedProductImageId = image.id
    if position is not None:
        scene.assets.productOverlayPosition = position
    if scale is not None:
        scene.assets.productOverlayScale = scale
    if animation:
        scene.assets.productOverlayAnimation = animation
    project.touch()
    return scene


def update_music_volume(project: VideoProject, volume: float) -> VideoProject:
    if volume < 0 or volume > 1:
        raise ValidationError("Volume must be between 0 and 1", field="volume")
    project.assets.music.volume = volume
    project.touch()
    return project


def disable_music(project: VideoProject) -> VideoProject:
    project.assets.music.enabled = False
    project.assets.music.url = None
    project.touch()
    return project


def add_product_image(
    project: VideoProject,
    url: str,
    name: str,
    description: Optional[str] = None,
    is_primary: bool = False,
) -> ProductImage:
    images = project.assets.productImages
    if is_primary or not images:
        for existing in images:
            existing.isPrimary = False
        is_primary = True
    image = ProductImage(
        id=f"img_{uuid.uuid4().hex[:12]}",
        url=url,
        name=name,
        description=description,
        isPrimary=is_primary,
    )
    images.append(image)
    project.touch()
    return image


def remove_product_image(project: VideoProject, image_id: str) -> ProductImage:
    """
    Remove a product image and clear any scene overlay that used it.
    """
    images = project.assets.productImages
    image = next((img for img in images if img.id == image_id), None)
    if image is None:
        raise ProductImageNotFoundError(image_id)

    project.assets.productImages = [img for img in images if img.id != image_id]
    if image.isPrimary and project.assets.productImages:
        project.assets.productImages[0].isPrimary = True

    for scene in project.scenes:
        if scene.assets.assignedProductImageId == image_id or scene.assets.productOverlayUrl == image.url:
            scene.assets.useProductOverlay = False
            scene.assets.productOverlayUrl = None
            scene.assets.assignedProductImageId = None
    project.touch()
    return image
