"""
Provider interfaces for the external generators used by the studio.

Concrete SaaS integrations plug in behind these; the default wiring uses
the deterministic implementations from services.mock_providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel

from video_schemas import AnalysisResult, Scene


class SceneDraft(BaseModel):
    """A scene as produced by a script writer, before ids/order are assigned"""
    type: str
    narration: str
    visualDirection: str
    duration: float


class GeneratedAsset(BaseModel):
    url: str
    source: str
    duration: Optional[float] = None
    prompt: Optional[str] = None


class ScriptWriter(ABC):
    @abstractmethod
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
        pass

    @abstractmethod
    async def parse_script(
        self,
        title: str,
        script: str,
        style: str,
        target_duration: Optional[float] = None,
    ) -> List[SceneDraft]:
        pass


class VoiceoverProvider(ABC):
    name = "voiceover"

    @abstractmethod
    async def synthesize(self, text: str, voice_id: Optional[str] = None) -> GeneratedAsset:
        pass


class ImageProvider(ABC):
    name = "image"

    @abstractmethod
    async def generate(self, prompt: str, aspect_ratio: str) -> GeneratedAsset:
        pass


class VideoProvider(ABC):
    name = "video"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        duration: float,
        aspect_ratio: str,
        image_url: Optional[str] = None,
    ) -> GeneratedAsset:
        pass


class MusicProvider(ABC):
    name = "music"

    @abstractmethod
    async def generate(
        self,
        style: str,
        mood: Optional[str],
        duration: float,
        custom_prompt: Optional[str] = None,
    ) -> GeneratedAsset:
        pass


class SceneAnalyzer(ABC):
    name = "analysis"

    @abstractmethod
    async def analyze(self, scene: Scene, scene_index: int) -> AnalysisResult:
        pass


@dataclass
class ProviderSet:
    """Everything the pipeline and workers need to talk to"""
    script_writer: ScriptWriter
    voiceover: VoiceoverProvider
    image: ImageProvider
    stock_image: ImageProvider
    video: VideoProvider
    music: MusicProvider
    analyzer: SceneAnalyzer


_providers: Optional[ProviderSet] = None


def get_providers() -> ProviderSet:
    global _providers
    if _providers is None:
        from services.mock_providers import build_mock_providers
        _providers = build_mock_providers()
    return _providers


def set_providers(providers: Optional[ProviderSet]) -> None:
    """Swap the provider set (None restores the default on next use)."""
    global _providers
    _providers = providers
