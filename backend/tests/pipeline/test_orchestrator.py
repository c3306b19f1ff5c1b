"""
Tests for Pipeline Orchestrator

Tests asset generation end to end against the mock providers:
- Full pipeline execution and per-step progress
- Provider fallbacks (stock images, keep-the-image for video)
- Step failures without fallback
- Skipped steps
"""

import pytest
from unittest.mock import AsyncMock

from pipeline.error_handler import ProviderError
from pipeline.orchestrator import PipelineOrchestrator, create_pipeline_orchestrator
from services.mock_providers import build_mock_providers
from tests.factories import build_project
from video_schemas import GENERATION_STEPS, ProjectStatus, StepState


@pytest.fixture
def fresh_project(store):
    """A saved project with scenes but no media yet."""
    project = build_project(3, status=ProjectStatus.GENERATING, with_media=False)
    store.save(project)
    return project


async def run_pipeline(store, project_id, providers=None, **kwargs):
    orchestrator = PipelineOrchestrator(project_id, store, providers or build_mock_providers())
    return await orchestrator.execute_pipeline(**kwargs)


@pytest.mark.asyncio
async def test_full_pipeline_generates_every_asset(store, fresh_project):
    """Test a clean run leaves the project ready with all assets."""
    project = await run_pipeline(store, fresh_project.id)

    assert project.status == ProjectStatus.READY
    for step in GENERATION_STEPS:
        assert project.progress.steps[step].status == StepState.COMPLETE
    assert project.progress.overallPercent == 85
    assert project.progress.serviceFailures == []

    for scene in project.scenes:
        assert scene.background.type == "video"
        assert scene.background.imageUrl is not None
        assert scene.assets.voiceoverUrl is not None
        assert scene.analysisResult is not None
    assert project.assets.voiceover.fullTrackUrl is not None
    assert len(project.assets.voiceover.perScene) == 3
    assert project.assets.music.url is not None

    # Progress is persisted, not only returned
    saved = store.get(fresh_project.id)
    assert saved.status == ProjectStatus.READY
    assert saved.progress.steps["qa"].status == StepState.COMPLETE


@pytest.mark.asyncio
async def test_skip_music_and_analysis(store, fresh_project):
    """Test skipped steps are marked and their assets left alone."""
    project = await run_pipeline(store, fresh_project.id, skip_music=True, skip_analysis=True)

    assert project.status == ProjectStatus.READY
    assert project.progress.steps["music"].status == StepState.SKIPPED
    assert project.progress.steps["qa"].status == StepState.SKIPPED
    assert project.assets.music.enabled is False
    assert all(scene.analysisResult is None for scene in project.scenes)
    assert project.progress.overallPercent == 85


@pytest.mark.asyncio
async def test_image_failure_falls_back_to_stock(store, fresh_project, fail_providers):
    """Test stock imagery replaces failed AI images."""
    fail_providers("image")
    project = await run_pipeline(store, fresh_project.id)

    assert project.status == ProjectStatus.READY
    assert all(scene.background.imageUrl and "/stock/" in scene.background.imageUrl for scene in project.scenes)
    image_failures = [f for f in project.progress.serviceFailures if f.service == "image"]
    assert len(image_failures) == 3
    assert image_failures[0].fallbackUsed == "stock"
    assert "from stock" in project.progress.steps["images"].message


@pytest.mark.asyncio
async def test_video_failure_keeps_image(store, fresh_project, fail_providers):
    """Test scenes keep their image when image-to-video fails."""
    fail_providers("video")
    project = await run_pipeline(store, fresh_project.id)

    assert project.status == ProjectStatus.READY
    assert all(scene.background.type == "image" for scene in project.scenes)
    video_failures = [f for f in project.progress.serviceFailures if f.service == "video"]
    assert len(video_failures) == 3
    assert video_failures[0].fallbackUsed == "image"
    assert project.progress.steps["videos"].message == "Generated 0 of 3 scene videos"


@pytest.mark.asyncio
async def test_voiceover_failure_stops_pipeline(store, fresh_project, fail_providers):
    """Test a step without fallback ends the run in error."""
    fail_providers("voiceover")
    project = await run_pipeline(store, fresh_project.id)

    assert project.status == ProjectStatus.ERROR
    assert project.progress.steps["voiceover"].status == StepState.ERROR
    assert project.progress.steps["images"].status == StepState.PENDING
    assert project.progress.errors[0].startswith("Voiceover generation failed")
    assert project.progress.serviceFailures[-1].service == "voiceover"
    assert store.get(fresh_project.id).status == ProjectStatus.ERROR


@pytest.mark.asyncio
async def test_image_and_stock_failure_stops_pipeline(store, fresh_project, fail_providers):
    """Test images fail only when the stock fallback fails too."""
    fail_providers("image", "stock")
    project = await run_pipeline(store, fresh_project.id)

    assert project.status == ProjectStatus.ERROR
    assert project.progress.steps["images"].status == StepState.ERROR
    services = [f.service for f in project.progress.serviceFailures]
    assert services == ["image", "image"]


@pytest.mark.asyncio
async def test_analysis_failure_leaves_scenes_unanalyzed(store, fresh_project, fail_providers):
    """Test failed analysis does not fail generation."""
    fail_providers("analysis")
    project = await run_pipeline(store, fresh_project.id)

    assert project.status == ProjectStatus.READY
    assert all(scene.analysisResult is None for scene in project.scenes)
    assert project.progress.steps["qa"].message == "Analyzed 0 of 3 scenes"


@pytest.mark.asyncio
async def test_script_step_writes_scenes_when_missing(store):
    """Test projects without scenes get a script first."""
    project = build_project(0, status=ProjectStatus.GENERATING)
    project.benefits = ["Keeps water cold", "Plastic free"]
    project.callToAction = "Shop now"
    project.targetDuration = 30
    store.save(project)

    result = await run_pipeline(store, project.id, skip_music=True, skip_analysis=True)

    assert [s.type for s in result.scenes] == ["hook", "benefit", "benefit", "cta"]
    assert result.sceneOrder == [s.id for s in result.scenes]
    assert result.progress.steps["script"].message == "Generated 4 scenes"


@pytest.mark.asyncio
async def test_script_writer_failure(store):
    """Test a failing script writer stops the run at the first step."""
    project = build_project(0, status=ProjectStatus.GENERATING)
    store.save(project)
    providers = build_mock_providers()
    providers.script_writer.write_product_script = AsyncMock(side_effect=ProviderError("script", "LLM down"))

    result = await run_pipeline(store, project.id, providers=providers)

    assert result.status == ProjectStatus.ERROR
    assert result.progress.steps["script"].status == StepState.ERROR
    assert result.progress.serviceFailures[0].service == "script"


@pytest.mark.asyncio
async def test_existing_media_not_regenerated(store):
    """Test scenes that already have an image keep it."""
    project = build_project(2, status=ProjectStatus.GENERATING, with_media=True)
    store.save(project)
    providers = build_mock_providers()
    providers.image.generate = AsyncMock()

    result = await run_pipeline(store, project.id, providers=providers, skip_music=True)

    providers.image.generate.assert_not_called()
    assert result.scenes[0].background.imageUrl == "https://assets.test/images/scene_a.png"


def test_create_pipeline_orchestrator_uses_configured_store(store):
    orchestrator = create_pipeline_orchestrator("proj_123")
    assert orchestrator.store is store
    assert orchestrator.project_id == "proj_123"
