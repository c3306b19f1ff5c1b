"""
Construction of new video projects from product or script input.
"""

import uuid
from typing import List

from studio.progress import complete_step
from studio.scene_graph import normalize_order
from services.providers import SceneDraft
from video_schemas import (
    OutputFormat,
    ProductImage,
    ProductVideoRequest,
    ProjectStatus,
    Scene,
    SceneBackground,
    ScriptVideoRequest,
    VideoProject,
)

OUTPUT_FORMATS = {
    "youtube": OutputFormat(aspectRatio="16:9", width=1920, height=1080, platform="youtube"),
    "tiktok": OutputFormat(aspectRatio="9:16", width=1080, height=1920, platform="tiktok"),
    "instagram": OutputFormat(aspectRatio="1:1", width=1080, height=1080, platform="instagram"),
    "facebook": OutputFormat(aspectRatio="16:9", width=1920, height=1080, platform="facebook"),
    "website": OutputFormat(aspectRatio="16:9", width=1920, height=1080, platform="website"),
}


def new_project_id() -> str:
    return f"proj_{uuid.uuid4().hex}"


def new_scene_id() -> str:
    return f"scene_{uuid.uuid4().hex[:12]}"


def output_format_for(platform: str) -> OutputFormat:
    return OUTPUT_FORMATS.get(platform, OUTPUT_FORMATS["youtube"]).model_copy()


def scenes_from_drafts(drafts: List[SceneDraft]) -> List[Scene]:
    return [
        Scene(
            id=new_scene_id(),
            order=index,
            type=draft.type,
            duration=draft.duration,
            narration=draft.narration,
            visualDirection=draft.visualDirection,
            background=SceneBackground(prompt=draft.visualDirection),
        )
        for index, draft in enumerate(drafts)
    ]


def _finish(project: VideoProject, message: str) -> VideoProject:
    normalize_order(project)
    complete_step(project, "script", message)
    project.progress.currentStep = "script"
    return project


def build_product_project(request: ProductVideoRequest, owner_id: str, drafts: List[SceneDraft]) -> VideoProject:
    project = VideoProject(
        id=new_project_id(),
        type="product",
        title=request.productName,
        description=request.productDescription,
        targetAudience=request.targetAudience or None,
        ownerId=owner_id,
        status=ProjectStatus.DRAFT,
        scenes=scenes_from_drafts(drafts),
        voiceId=request.voiceId,
        style=request.style,
        callToAction=request.callToAction,
        benefits=list(request.benefits),
        targetDuration=float(request.duration),
        outputFormat=output_format_for(request.platform),
    )

    has_primary = any(img.isPrimary for img in request.productImages)
    for index, img in enumerate(request.productImages):
        project.assets.productImages.append(ProductImage(
            id=f"img_{uuid.uuid4().hex[:12]}",
            url=img.url,
            name=img.name,
            description=img.description,
            isPrimary=img.isPrimary if has_primary else index == 0,
        ))
    project.assets.voiceover.voiceId = request.voiceId

    return _finish(project, f"Generated {len(project.scenes)} scenes")


def build_script_project(request: ScriptVideoRequest, owner_id: str, drafts: List[SceneDraft]) -> VideoProject:
    project = VideoProject(
        id=new_project_id(),
        type="script-based",
        title=request.title,
        ownerId=owner_id,
        status=ProjectStatus.DRAFT,
        scenes=scenes_from_drafts(drafts),
        voiceId=request.voiceId,
        style=request.style,
        sourceScript=request.script,
        targetDuration=request.targetDuration,
        outputFormat=output_format_for(request.platform),
    )
    project.assets.voiceover.voiceId = request.voiceId
    return _finish(project, f"Parsed {len(project.scenes)} scenes")
