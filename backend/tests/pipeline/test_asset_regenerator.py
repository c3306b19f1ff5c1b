"""
Tests for single-asset regeneration (image, voiceover, music, analysis).
"""

import pytest

from pipeline.asset_regenerator import (
    analyze_scenes,
    regenerate_image,
    regenerate_music,
    synthesize_voiceover,
)
from pipeline.error_handler import ProviderError, SceneNotFoundError
from services.mock_providers import build_mock_providers
from tests.factories import build_project


@pytest.fixture
def providers():
    return build_mock_providers()


@pytest.mark.asyncio
async def test_regenerate_image_keeps_previous_as_alternative(providers):
    project = build_project(2, scores=[90, 90])
    project.scenes[0].userApproved = True

    asset = await regenerate_image(project, "scene_a", "Bottle on a glacier", providers.image, providers.stock_image)

    scene = project.scenes[0]
    assert scene.background.imageUrl == asset.url
    assert scene.background.prompt == "Bottle on a glacier"
    assert scene.assets.alternativeImages[0].url == "https://assets.test/images/scene_a.png"
    assert scene.regenerationCount == 1
    assert scene.analysisResult is None
    assert scene.userApproved is False
    record = project.regenerationHistory[-1]
    assert record.assetType == "image"
    assert record.previousUrl == "https://assets.test/images/scene_a.png"
    assert record.newUrl == asset.url


@pytest.mark.asyncio
async def test_regenerate_image_defaults_to_existing_prompt(providers):
    project = build_project(1)
    asset = await regenerate_image(project, "scene_a", None, providers.image, providers.stock_image)
    assert asset.prompt == "Visual 0"


@pytest.mark.asyncio
async def test_regenerate_image_stock_fallback(providers, fail_providers):
    fail_providers("image")
    project = build_project(1)

    asset = await regenerate_image(project, "scene_a", "Prompt", providers.image, providers.stock_image)

    assert asset.source == "stock"
    assert project.scenes[0].background.source == "stock"
    assert project.progress.serviceFailures[0].fallbackUsed == "stock"


@pytest.mark.asyncio
async def test_regenerate_image_both_fail(providers, fail_providers):
    fail_providers("image", "stock")
    project = build_project(1)

    with pytest.raises(ProviderError):
        await regenerate_image(project, "scene_a", "Prompt", providers.image, providers.stock_image)

    # Scene untouched, failures logged
    assert project.scenes[0].background.imageUrl == "https://assets.test/images/scene_a.png"
    assert len(project.progress.serviceFailures) == 2


@pytest.mark.asyncio
async def test_regenerate_image_unknown_scene(providers):
    project = build_project(1)
    with pytest.raises(SceneNotFoundError):
        await regenerate_image(project, "scene_x", None, providers.image, providers.stock_image)


@pytest.mark.asyncio
async def test_voiceover_subset_keeps_other_clips(providers):
    project = build_project(3)
    await synthesize_voiceover(project, providers.voiceover)
    untouched = project.scenes[2].assets.voiceoverUrl

    project.scenes[0].narration = "A brand new opening line for the video."
    await synthesize_voiceover(project, providers.voiceover, voice_id="voice_2", scene_ids=["scene_a"])

    assert project.voiceId == "voice_2"
    assert project.assets.voiceover.voiceId == "voice_2"
    assert project.scenes[2].assets.voiceoverUrl == untouched
    assert [clip.sceneId for clip in project.assets.voiceover.perScene] == ["scene_a", "scene_b", "scene_c"]
    assert project.assets.voiceover.duration > 0


@pytest.mark.asyncio
async def test_voiceover_unknown_scene(providers):
    project = build_project(1)
    with pytest.raises(SceneNotFoundError):
        await synthesize_voiceover(project, providers.voiceover, scene_ids=["scene_q"])


@pytest.mark.asyncio
async def test_regenerate_music_enables_track(providers):
    project = build_project(2)
    project.assets.music.enabled = False

    asset = await regenerate_music(project, providers.music, style="upbeat", mood="happy")

    music = project.assets.music
    assert music.enabled is True
    assert music.url == asset.url
    assert music.style == "upbeat"
    assert music.mood == "happy"
    assert music.duration == 10.0


@pytest.mark.asyncio
async def test_analyze_scenes_records_scores(providers):
    project = build_project(2)
    analyzed = await analyze_scenes(project, providers.analyzer)

    assert analyzed == 2
    for scene in project.scenes:
        assert scene.qualityScore == scene.analysisResult.overallScore
        assert 60 <= scene.qualityScore <= 100


@pytest.mark.asyncio
async def test_analysis_without_media_scores_low(providers):
    project = build_project(1, with_media=False)
    await analyze_scenes(project, providers.analyzer)

    result = project.scenes[0].analysisResult
    assert result.overallScore == 40
    assert result.recommendation == "regenerate"
    assert result.issues[0].severity == "critical"
