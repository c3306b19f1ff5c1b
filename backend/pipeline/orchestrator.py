"""
Pipeline Orchestrator

Runs asset generation for a video project:
1. script     - scenes (already written at creation for most projects)
2. voiceover  - per-scene narration audio plus a full track
3. images     - AI image per scene, stock imagery as fallback
4. videos     - image-to-video per scene, keeping the image as fallback
5. music      - background track (can be skipped)
6. assembly   - final scene timing
7. qa         - scene analysis for the quality gate (can be skipped)

Rendering is started separately from the render endpoint.

Each step updates the project's production progress and persists it, so
clients polling the project see progress as it happens.
"""

from typing import Optional

import structlog

from pipeline.asset_regenerator import analyze_scenes, generate_scene_image, synthesize_voiceover
from pipeline.error_handler import ProviderError, StudioError
from services.project_store import ProjectStore
from services.providers import ProviderSet
from studio.progress import (
    complete_step,
    fail_step,
    record_service_failure,
    set_step_progress,
    skip_step,
    start_step,
)
from studio.project_factory import scenes_from_drafts
from studio.scene_graph import normalize_order
from video_schemas import GENERATION_STEPS, ProjectStatus, SceneBackground, VideoProject

logger = structlog.get_logger(__name__)


class PipelineStepError(Exception):
    """A step failed and has no fallback; generation stops."""

    def __init__(self, step: str, message: str):
        self.step = step
        self.message = message
        super().__init__(f"{step}: {message}")


class PipelineOrchestrator:
    """
    Orchestrate asset generation for one project.

    Example:
        >>> orchestrator = PipelineOrchestrator("proj_123", store, providers)
        >>> project = await orchestrator.execute_pipeline(skip_music=True)
    """

    def __init__(self, project_id: str, store: ProjectStore, providers: ProviderSet):
        self.project_id = project_id
        self.store = store
        self.providers = providers
        self.logger = structlog.get_logger().bind(project_id=project_id)

    async def execute_pipeline(self, skip_music: bool = False, skip_analysis: bool = False) -> VideoProject:
        """
        Run every generation step in order.

        The project is expected to already be in `generating`. On a step
        failure without fallback the project ends in `error`; otherwise `ready`.
        """
        project = self.store.get(self.project_id)
        project.status = ProjectStatus.GENERATING
        project.progress.errors = []
        self.logger.info("pipeline_execution_started", scenes=len(project.scenes), skip_music=skip_music)

        steps = {
            "script": self._generate_script,
            "voiceover": self._generate_voiceovers,
            "images": self._generate_images,
            "videos": self._generate_videos,
            "music": self._generate_music,
            "assembly": self._assemble,
            "qa": self._analyze,
        }

        for step in GENERATION_STEPS:
            if step == "music" and skip_music:
                skip_step(project, step, "Music disabled")
                project.assets.music.enabled = False
                self.store.save(project)
                continue
            if step == "qa" and skip_analysis:
                skip_step(project, step, "Analysis skipped")
                self.store.save(project)
                continue

            start_step(project, step)
            self.store.save(project)
            try:
                message = await steps[step](project)
            except PipelineStepError as e:
                self.logger.error("pipeline_step_failed", step=e.step, error=e.message)
                fail_step(project, step, f"{step.capitalize()} generation failed: {e.message}")
                project.status = ProjectStatus.ERROR
                self.store.save(project)
                return project
            complete_step(project, step, message)
            self.store.save(project)
            self.logger.info("pipeline_step_completed", step=step, message=message)

        project.status = ProjectStatus.READY
        project.progress.currentStep = "qa"
        project.touch()
        self.store.save(project)
        self.logger.info("pipeline_execution_completed", overall_percent=project.progress.overallPercent)
        return project

    async def _generate_script(self, project: VideoProject) -> str:
        if project.scenes:
            return f"Using {len(project.scenes)} existing scenes"

        writer = self.providers.script_writer
        try:
            if project.type == "product":
                drafts = await writer.write_product_script(
                    product_name=project.title,
                    product_description=project.description,
                    benefits=project.benefits,
                    target_audience=project.targetAudience or "",
                    call_to_action=project.callToAction or "Learn more today",
                    duration=int(project.targetDuration or 30),
                    style=project.style or "professional",
                )
            else:
                drafts = await writer.parse_script(
                    title=project.title,
                    script=project.sourceScript or "",
                    style=project.style or "professional",
                    target_duration=project.targetDuration,
                )
        except StudioError as e:
            record_service_failure(project, "script", e.message)
            raise PipelineStepError("script", e.message)

        project.scenes = scenes_from_drafts(drafts)
        normalize_order(project)
        return f"Generated {len(project.scenes)} scenes"

    async def _generate_voiceovers(self, project: VideoProject) -> str:
        try:
            total = await synthesize_voiceover(project, self.providers.voiceover)
        except ProviderError as e:
            record_service_failure(project, "voiceover", e.message)
            raise PipelineStepError("voiceover", e.message)
        return f"Generated {len(project.scenes)} voiceover clips ({total:.1f}s)"

    async def _generate_images(self, project: VideoProject) -> str:
        stock_used = 0
        count = len(project.scenes)
        for index, scene in enumerate(project.scenes):
            if scene.background.imageUrl or scene.background.videoUrl:
                continue
            prompt = scene.visualDirection or scene.narration
            try:
                asset = await generate_scene_image(
                    project, prompt, self.providers.image, self.providers.stock_image
                )
            except ProviderError as e:
                raise PipelineStepError("images", e.message)
            if asset.source == "stock":
                stock_used += 1
            scene.background = SceneBackground(type="image", source=asset.source, imageUrl=asset.url, prompt=prompt)
            scene.assets.imageUrl = asset.url
            scene.assets.backgroundUrl = asset.url
            set_step_progress(project, "images", round(100 * (index + 1) / count))
        if stock_used:
            return f"Generated images ({stock_used} from stock)"
        return f"Generated {count} images"

    async def _generate_videos(self, project: VideoProject) -> str:
        generated = 0
        count = len(project.scenes)
        aspect_ratio = project.outputFormat.aspectRatio
        for index, scene in enumerate(project.scenes):
            if scene.background.type == "video":
                continue
            try:
                asset = await self.providers.video.generate(
                    prompt=scene.visualDirection or scene.narration,
                    duration=scene.duration,
                    aspect_ratio=aspect_ratio,
                    image_url=scene.background.imageUrl,
                )
            except ProviderError as e:
                record_service_failure(project, "video", e.message, fallback_used="image")
                self.logger.warning("scene_video_fallback_to_image", scene_id=scene.id, error=e.message)
                continue
            scene.background = SceneBackground(
                type="video",
                source=asset.source,
                imageUrl=scene.background.imageUrl,
                videoUrl=asset.url,
                prompt=scene.background.prompt,
            )
            scene.assets.videoUrl = asset.url
            generated += 1
            set_step_progress(project, "videos", round(100 * (index + 1) / count))
        return f"Generated {generated} of {count} scene videos"

    async def _generate_music(self, project: VideoProject) -> str:
        duration = sum(scene.duration for scene in project.scenes)
        try:
            asset = await self.providers.music.generate(
                style=project.style or "professional",
                mood=None,
                duration=duration,
            )
        except ProviderError as e:
            record_service_failure(project, "music", e.message)
            raise PipelineStepError("music", e.message)
        music = project.assets.music
        music.url = asset.url
        music.duration = asset.duration or duration
        music.source = asset.source
        music.style = project.style
        music.enabled = True
        return "Background music generated"

    async def _assemble(self, project: VideoProject) -> str:
        # Scenes are never shorter than their narration
        for scene in project.scenes:
            if scene.assets.voiceoverDuration and scene.assets.voiceoverDuration > scene.duration:
                scene.duration = round(scene.assets.voiceoverDuration + 0.5, 1)
        normalize_order(project)
        return f"Assembled {len(project.scenes)} scenes ({project.totalDuration:.1f}s)"

    async def _analyze(self, project: VideoProject) -> str:
        analyzed = await analyze_scenes(project, self.providers.analyzer)
        return f"Analyzed {analyzed} of {len(project.scenes)} scenes"


def create_pipeline_orchestrator(
    project_id: str,
    store: Optional[ProjectStore] = None,
    providers: Optional[ProviderSet] = None,
) -> PipelineOrchestrator:
    """
    Factory wiring the configured store and providers.
    """
    from services.project_store import get_project_store
    from services.providers import get_providers

    return PipelineOrchestrator(
        project_id=project_id,
        store=store or get_project_store(),
        providers=providers or get_providers(),
    )
