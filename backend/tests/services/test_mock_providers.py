"""
Tests for the deterministic mock providers and failure injection.
"""

import pytest

from pipeline.error_handler import ProviderError, RateLimitedError
from services.mock_providers import build_mock_providers
from services.render_backend import MockRenderBackend
from tests.factories import build_project


@pytest.fixture
def providers():
    return build_mock_providers()


@pytest.mark.asyncio
async def test_same_input_same_asset(providers):
    first = await providers.image.generate("Bottle on a beach", "16:9")
    second = await providers.image.generate("Bottle on a beach", "16:9")
    other = await providers.image.generate("Bottle on a mountain", "16:9")

    assert first.url == second.url
    assert first.url != other.url
    assert first.source == "ai"


@pytest.mark.asyncio
async def test_voiceover_duration_follows_text(providers):
    asset = await providers.voiceover.synthesize("one two three four five six seven eight nine ten")
    assert asset.duration == 4.0


@pytest.mark.asyncio
async def test_injected_failure(providers, fail_providers):
    fail_providers("video", "music")

    with pytest.raises(ProviderError) as exc_info:
        await providers.video.generate("prompt", 5.0, "16:9")
    assert exc_info.value.service == "video"

    with pytest.raises(ProviderError):
        await providers.music.generate("calm", None, 30.0)

    # Other providers unaffected
    assert (await providers.image.generate("prompt", "1:1")).url


@pytest.mark.asyncio
async def test_analyzer_is_deterministic(providers):
    scene = build_project(1).scenes[0]
    first = await providers.analyzer.analyze(scene, 0)
    second = await providers.analyzer.analyze(scene, 0)
    assert first.overallScore == second.overallScore


@pytest.mark.asyncio
async def test_render_backend_rate_limit_injection(fail_providers):
    fail_providers("render-rate-limit")
    backend = MockRenderBackend()
    with pytest.raises(RateLimitedError) as exc_info:
        await backend.get_progress("render_1", "bucket")
    assert exc_info.value.retry_after == 10


@pytest.mark.asyncio
async def test_render_backend_start_failure(fail_providers):
    fail_providers("render")
    with pytest.raises(ProviderError):
        await MockRenderBackend().start_render(build_project(1))
