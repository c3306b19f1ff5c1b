"""
Mock providers for running the studio without paid services.

Every provider is deterministic: URLs and scores derive from a hash of the
inputs, so repeated calls with the same input return the same asset.

Failures can be injected per provider kind with MOCK_FAILING_PROVIDERS,
e.g. MOCK_FAILING_PROVIDERS=image,video makes AI image and video generation
fail so the stock-image and keep-the-image fallbacks kick in.
"""

import hashlib
from datetime import datetime, timezone
from typing import List, Optional

import structlog

from config import settings
from pipeline.error_handler import ProviderError
from pipeline.script_parser import build_product_scenes, estimate_duration, parse_script
from services.providers import (
    GeneratedAsset,
    ImageProvider,
    MusicProvider,
    ProviderSet,
    SceneAnalyzer,
    SceneDraft,
    ScriptWriter,
    VideoProvider,
    VoiceoverProvider,
)
from video_schemas import AnalysisResult, QualityIssue, Scene

logger = structlog.get_logger()


def _digest(*parts: object) -> str:
    joined = "|".join("" if p is None else str(p) for p in parts)
    return hashlib.sha1(joined.encode("utf-8")).hexdigest()


def _asset_url(kind: str, extension: str, *parts: object) -> str:
    return f"{settings.MOCK_ASSET_BASE_URL}/{kind}/{_digest(kind, *parts)[:16]}.{extension}"


def _maybe_fail(kind: str) -> None:
    if kind in settings.failing_providers:
        logger.warning("mock_provider_failure_injected", provider=kind)
        raise ProviderError(kind, f"Mock {kind} provider failure (injected)")


class MockScriptWriter(ScriptWriter):
    async def write_product_script(
        self,
        product_name: str,
        product_description: str,
        benefits: List[str],
        target_audience: str,
        call_to_action: str,
        duration: int,
        style: str,
    ) -> List[SceneDraft]:
        _maybe_fail("script")
        return build_product_scenes(
            product_name=product_name,
            product_description=product_description,
            benefits=benefits,
            call_to_action=call_to_action,
            duration=duration,
            style=style,
        )

    async def parse_script(
        self,
        title: str,
        script: str,
        style: str,
        target_duration: Optional[float] = None,
    ) -> List[SceneDraft]:
        _maybe_fail("script")
        return parse_script(script, style=style, target_duration=target_duration)


class MockVoiceoverProvider(VoiceoverProvider):
    name = "mock-tts"

    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> GeneratedAsset:
        _maybe_fail("voiceover")
        return GeneratedAsset(
            url=_asset_url("voiceover", "mp3", text, voice_id),
            source=self.name,
            duration=estimate_duration(text),
        )


class MockImageProvider(ImageProvider):
    name = "mock-ai-image"

    async def generate(self, prompt: str, aspect_ratio: str) -> GeneratedAsset:
        _maybe_fail("image")
        return GeneratedAsset(
            url=_asset_url("images", "png", prompt, aspect_ratio),
            source="ai",
            prompt=prompt,
        )


class MockStockImageProvider(ImageProvider):
    name = "mock-stock"

    async def generate(self, prompt: str, aspect_ratio: str) -> GeneratedAsset:
        _maybe_fail("stock")
        return GeneratedAsset(
            url=_asset_url("stock", "jpg", prompt),
            source="stock",
            prompt=prompt,
        )


class MockVideoProvider(VideoProvider):
    name = "mock-i2v"

    async def generate(
        self,
        prompt: str,
        duration: float,
        aspect_ratio: str,
        image_url: Optional[str] = None,
    ) -> GeneratedAsset:
        _maybe_fail("video")
        return GeneratedAsset(
            url=_asset_url("videos", "mp4", prompt, duration, aspect_ratio, image_url),
            source=self.name,
            duration=duration,
            prompt=prompt,
        )


class MockMusicProvider(MusicProvider):
    name = "mock-music"

    async def generate(
        self,
        style: str,
        mood: Optional[str],
        duration: float,
        custom_prompt: Optional[str] = None,
    ) -> GeneratedAsset:
        _maybe_fail("music")
        return GeneratedAsset(
            url=_asset_url("music", "mp3", style, mood, duration, custom_prompt),
            source=self.name,
            duration=duration,
            prompt=custom_prompt,
        )


class MockSceneAnalyzer(SceneAnalyzer):
    """
    Scores a scene from a hash of its media URL and narration.

    Scenes without any background media always score low so the quality
    gate has something to block on.
    """

    name = "mock-vision"

    async def analyze(self, scene: Scene, scene_index: int) -> AnalysisResult:
        _maybe_fail("analysis")
        media_url = scene.background.videoUrl or scene.background.imageUrl or scene.assets.backgroundUrl
        issues = []
        if not media_url:
            score = 40
            issues.append(QualityIssue(
                category="technical",
                severity="critical",
                description="Scene has no background media",
                suggestion="Regenerate the scene image",
            ))
        else:
            score = 60 + int(_digest(media_url, scene.narration)[:8], 16) % 41
            if score < 70:
                issues.append(QualityIssue(
                    category="content",
                    severity="major",
                    description="Visual does not clearly match the narration",
                    suggestion="Try a more specific visual direction",
                ))
            elif score < 85:
                issues.append(QualityIssue(
                    category="composition",
                    severity="minor",
                    description="Subject is slightly off-center",
                ))

        if score >= 85:
            recommendation = "approved"
        elif score >= 70:
            recommendation = "needs_review"
        else:
            recommendation = "regenerate"

        return AnalysisResult(
            sceneIndex=scene_index,
            overallScore=score,
            technicalScore=min(100, score + 5),
            contentMatchScore=score,
            compositionScore=max(0, score - 5),
            issues=issues,
            recommendation=recommendation,
            analyzedAt=datetime.now(timezone.utc),
            analysisModel=self.name,
        )


def build_mock_providers() -> ProviderSet:
    return ProviderSet(
        script_writer=MockScriptWriter(),
        voiceover=MockVoiceoverProvider(),
        image=MockImageProvider(),
        stock_image=MockStockImageProvider(),
        video=MockVideoProvider(),
        music=MockMusicProvider(),
        analyzer=MockSceneAnalyzer(),
    )
