"""
Single-asset generation shared by the pipeline and the edit endpoints.

Handles provider fallback and ServiceFailure bookkeeping so callers only
deal with the resulting asset (or a ProviderError when nothing worked).
"""

import uuid
from typing import List, Optional

import structlog

from pipeline.error_handler import ProviderError
from services.providers import (
    GeneratedAsset,
    ImageProvider,
    MusicProvider,
    SceneAnalyzer,
    VoiceoverProvider,
)
from studio.progress import record_service_failure
from studio.quality_gate import clear_analysis
from studio.scene_graph import get_scene
from video_schemas import (
    AlternativeAsset,
    RegenerationRecord,
    SceneBackground,
    SceneVoiceover,
    VideoProject,
)

logger = structlog.get_logger()


async def generate_scene_image(
    project: VideoProject,
    prompt: str,
    image_provider: ImageProvider,
    stock_provider: ImageProvider,
) -> GeneratedAsset:
    """
    AI image first, stock imagery as fallback.

    Raises:
        ProviderError: If both providers fail
    """
    aspect_ratio = project.outputFormat.aspectRatio
    try:
        return await image_provider.generate(prompt, aspect_ratio)
    except ProviderError as e:
        record_service_failure(project, "image", e.message, fallback_used="stock")
        logger.warning("image_generation_fallback_to_stock", project_id=project.id, error=e.message)

    try:
        return await stock_provider.generate(prompt, aspect_ratio)
    except ProviderError as e:
        record_service_failure(project, "image", f"Stock fallback failed: {e.message}")
        raise


async def synthesize_voiceover(
    project: VideoProject,
    provider: VoiceoverProvider,
    voice_id: Optional[str] = None,
    scene_ids: Optional[List[str]] = None,
) -> float:
    """
    (Re)generate narration audio for the given scenes (all by default) and
    the full track. Returns the full track duration.

    Raises:
        ProviderError: Voiceover has no fallback
    """
    if voice_id:
        project.voiceId = voice_id
        project.assets.voiceover.voiceId = voice_id
    voice = project.voiceId

    targets = set(scene_ids) if scene_ids else None
    if targets:
        for sid in targets:
            get_scene(project, sid)

    clips = {clip.sceneId: clip for clip in project.assets.voiceover.perScene}
    for scene in project.scenes:
        if targets is not None and scene.id not in targets:
            continue
        asset = await provider.synthesize(scene.narration, voice)
        scene.assets.voiceoverUrl = asset.url
        scene.assets.voiceoverDuration = asset.duration
        clips[scene.id] = SceneVoiceover(sceneId=scene.id, url=asset.url, duration=asset.duration or 0.0)

    full_text = " ... ".join(scene.narration for scene in project.scenes)
    full_track = await provider.synthesize(full_text, voice)

    voiceover = project.assets.voiceover
    voiceover.perScene = [clips[s.id] for s in project.scenes if s.id in clips]
    voiceover.fullTrackUrl = full_track.url
    voiceover.duration = full_track.duration or 0.0
    project.touch()
    return voiceover.duration


async def regenerate_image(
    project: VideoProject,
    scene_id: str,
    prompt: Optional[str],
    image_provider: ImageProvider,
    stock_provider: ImageProvider,
) -> GeneratedAsset:
    """
    Replace a scene's image. The previous image is kept as an alternative,
    the analysis is cleared and the regeneration is recorded.
    """
    scene = get_scene(project, scene_id)
    use_prompt = (prompt or "").strip() or scene.background.prompt or scene.visualDirection or scene.narration
    previous = scene.background.imageUrl or scene.assets.backgroundUrl

    asset = await generate_scene_image(project, use_prompt, image_provider, stock_provider)

    if previous and all(alt.url != previous for alt in scene.assets.alternativeImages):
        scene.assets.alternativeImages.append(
            AlternativeAsset(url=previous, prompt=scene.background.prompt, source=scene.background.source)
        )
    scene.background = SceneBackground(type="image", source=asset.source, imageUrl=asset.url, prompt=use_prompt)
    scene.assets.imageUrl = asset.url
    scene.assets.backgroundUrl = asset.url
    scene.assets.videoUrl = None
    scene.regenerationCount += 1
    clear_analysis(scene)

    project.regenerationHistory.append(RegenerationRecord(
        id=f"regen_{uuid.uuid4().hex[:12]}",
        sceneId=scene.id,
        assetType="image",
        previousUrl=previous,
        newUrl=asset.url,
        prompt=use_prompt,
    ))
    project.touch()
    logger.info("scene_image_regenerated", project_id=project.id, scene_id=scene.id, source=asset.source)
    return asset


async def regenerate_music(
    project: VideoProject,
    provider: MusicProvider,
    style: Optional[str] = None,
    mood: Optional[str] = None,
    custom_prompt: Optional[str] = None,
) -> GeneratedAsset:
    duration = project.totalDuration or sum(scene.duration for scene in project.scenes)
    use_style = style or project.assets.music.style or project.style or "professional"
    asset = await provider.generate(use_style, mood, duration, custom_prompt)

    music = project.assets.music
    music.url = asset.url
    music.duration = asset.duration or duration
    music.style = use_style
    music.mood = mood
    music.source = asset.source
    music.enabled = True
    project.touch()
    logger.info("music_regenerated", project_id=project.id, style=use_style, mood=mood)
    return asset


async def analyze_scenes(project: VideoProject, analyzer: SceneAnalyzer) -> int:
    """
    Analyze every scene. A failed analysis is logged as a ServiceFailure and
    leaves that scene unanalyzed. Returns the number of scenes analyzed.
    """
    analyzed = 0
    for index, scene in enumerate(project.scenes):
        try:
            result = await analyzer.analyze(scene, index)
        except ProviderError as e:
            record_service_failure(project, "analysis", f"Scene {index + 1}: {e.message}")
            logger.warning("scene_analysis_failed", project_id=project.id, scene_id=scene.id, error=e.message)
            continue
        scene.analysisResult = result
        scene.qualityScore = result.overallScore
        analyzed += 1
    project.touch()
    return analyzed
