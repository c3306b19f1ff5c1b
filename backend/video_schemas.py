"""
Pydantic schemas for video projects.

Holds the VideoProject aggregate (scenes, assets, production progress),
the derived quality report, undo/redo history records, video regeneration
jobs, and the request/response bodies of the /api/video endpoints.

Field names are camelCase to match the JSON consumed by the studio client.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enumerations
# ============================================================================

class ProjectStatus(str, Enum):
    """Lifecycle of a video project"""
    DRAFT = "draft"
    GENERATING = "generating"
    READY = "ready"
    RENDERING = "rendering"
    COMPLETE = "complete"
    ERROR = "error"


class StepState(str, Enum):
    """Status of a single production step"""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    ERROR = "error"
    SKIPPED = "skipped"


class VideoJobStatus(str, Enum):
    """Status of an asynchronous scene video regeneration job"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_JOB_STATUSES = (VideoJobStatus.PENDING, VideoJobStatus.RUNNING)
TERMINAL_JOB_STATUSES = (VideoJobStatus.SUCCEEDED, VideoJobStatus.FAILED, VideoJobStatus.CANCELLED)

# Generation steps in execution order; rendering is started separately
GENERATION_STEPS = ["script", "voiceover", "images", "videos", "music", "assembly", "qa"]
PRODUCTION_STEPS = GENERATION_STEPS + ["rendering"]

SceneType = Literal[
    "hook", "intro", "benefit", "feature", "explanation",
    "process", "testimonial", "brand", "cta", "outro",
]
Platform = Literal["youtube", "tiktok", "instagram", "facebook", "website"]
Recommendation = Literal["approved", "needs_review", "regenerate"]
Severity = Literal["critical", "major", "minor"]


# ============================================================================
# Production progress
# ============================================================================

class StepStatus(BaseModel):
    status: StepState = StepState.PENDING
    progress: int = Field(0, ge=0, le=100)
    message: Optional[str] = None


def _default_steps() -> Dict[str, StepStatus]:
    return {step: StepStatus() for step in PRODUCTION_STEPS}


class ServiceFailure(BaseModel):
    """Failure of a paid external service, kept as an append-only log"""
    service: str
    timestamp: datetime = Field(default_factory=utcnow)
    error: str
    fallbackUsed: Optional[str] = None


class ProductionProgress(BaseModel):
    currentStep: str = "idle"
    steps: Dict[str, StepStatus] = Field(default_factory=_default_steps)
    overallPercent: int = Field(0, ge=0, le=100)
    errors: List[str] = Field(default_factory=list)
    serviceFailures: List[ServiceFailure] = Field(default_factory=list)

    # Render bookkeeping (epoch seconds), persisted so timeouts survive restarts
    renderStartedAt: Optional[float] = None
    lastProgressValue: Optional[int] = None
    lastProgressUpdateAt: Optional[float] = None


# ============================================================================
# Scenes
# ============================================================================

class OverlayPosition(BaseModel):
    x: Literal["left", "center", "right"] = "right"
    y: Literal["top", "center", "bottom"] = "bottom"


class AlternativeAsset(BaseModel):
    """A previously used image/video kept for quick swap-back"""
    url: str
    prompt: Optional[str] = None
    source: str = "previous"


class SceneBackground(BaseModel):
    type: Literal["image", "video"] = "image"
    source: str = "ai"
    imageUrl: Optional[str] = None
    videoUrl: Optional[str] = None
    prompt: Optional[str] = None


class SceneAssets(BaseModel):
    backgroundUrl: Optional[str] = None
    imageUrl: Optional[str] = None
    videoUrl: Optional[str] = None
    voiceoverUrl: Optional[str] = None
    voiceoverDuration: Optional[float] = None
    productOverlayUrl: Optional[str] = None
    productOverlayPosition: OverlayPosition = Field(default_factory=OverlayPosition)
    productOverlayScale: float = 0.3
    productOverlayAnimation: str = "fade"
    useProductOverlay: bool = False
    assignedProductImageId: Optional[str] = None
    alternativeImages: List[AlternativeAsset] = Field(default_factory=list)
    alternativeVideos: List[AlternativeAsset] = Field(default_factory=list)


class QualityIssue(BaseModel):
    category: str = "technical"
    severity: Severity = "minor"
    description: str
    suggestion: Optional[str] = None


class AnalysisResult(BaseModel):
    """Vision analysis of a single scene"""
    sceneIndex: int
    overallScore: int = Field(..., ge=0, le=100)
    technicalScore: int = Field(0, ge=0, le=100)
    contentMatchScore: int = Field(0, ge=0, le=100)
    compositionScore: int = Field(0, ge=0, le=100)
    issues: List[QualityIssue] = Field(default_factory=list)
    recommendation: Recommendation = "needs_review"
    analyzedAt: datetime = Field(default_factory=utcnow)
    analysisModel: str = "unknown"


class Scene(BaseModel):
    id: str
    order: int
    type: SceneType = "explanation"
    duration: float = Field(5.0, gt=0)
    narration: str = ""
    visualDirection: str = ""
    background: SceneBackground = Field(default_factory=SceneBackground)
    assets: SceneAssets = Field(default_factory=SceneAssets)
    analysisResult: Optional[AnalysisResult] = None
    qualityScore: Optional[int] = None
    overlayConfig: Optional[Dict[str, Any]] = None
    userApproved: bool = False
    rejectionReason: Optional[str] = None
    regenerationCount: int = 0


# ============================================================================
# Project
# ============================================================================

class ProductImage(BaseModel):
    id: str
    url: str
    name: str
    description: Optional[str] = None
    isPrimary: bool = False


class SceneVoiceover(BaseModel):
    sceneId: str
    url: str
    duration: float


class VoiceoverAsset(BaseModel):
    fullTrackUrl: Optional[str] = None
    duration: float = 0.0
    voiceId: Optional[str] = None
    perScene: List[SceneVoiceover] = Field(default_factory=list)


class MusicAsset(BaseModel):
    url: Optional[str] = None
    duration: float = 0.0
    volume: float = Field(0.18, ge=0.0, le=1.0)
    enabled: bool = True
    style: Optional[str] = None
    mood: Optional[str] = None
    source: Optional[str] = None


class ProjectAssets(BaseModel):
    voiceover: VoiceoverAsset = Field(default_factory=VoiceoverAsset)
    music: MusicAsset = Field(default_factory=MusicAsset)
    productImages: List[ProductImage] = Field(default_factory=list)


class OutputFormat(BaseModel):
    aspectRatio: Literal["16:9", "9:16", "1:1"] = "16:9"
    width: int = 1920
    height: int = 1080
    platform: Platform = "youtube"


class RegenerationRecord(BaseModel):
    id: str
    sceneId: str
    assetType: Literal["image", "video", "voiceover", "music"]
    previousUrl: Optional[str] = None
    newUrl: str
    prompt: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    success: bool = True


class VideoProject(BaseModel):
    """
    The aggregate every panel of the studio reads.

    Invariant: scenes[i].order == i and sceneOrder == [s.id for s in scenes]
    after every mutation (see studio.scene_graph.normalize_order).
    """
    id: str
    type: Literal["product", "script-based"]
    title: str
    description: str = ""
    targetAudience: Optional[str] = None
    ownerId: str
    status: ProjectStatus = ProjectStatus.DRAFT
    scenes: List[Scene] = Field(default_factory=list)
    sceneOrder: List[str] = Field(default_factory=list)
    assets: ProjectAssets = Field(default_factory=ProjectAssets)
    progress: ProductionProgress = Field(default_factory=ProductionProgress)
    voiceId: Optional[str] = None
    style: Optional[str] = None
    callToAction: Optional[str] = None
    benefits: List[str] = Field(default_factory=list)
    sourceScript: Optional[str] = None
    targetDuration: Optional[float] = None
    outputFormat: OutputFormat = Field(default_factory=OutputFormat)
    fps: int = 30
    totalDuration: float = 0.0
    outputUrl: Optional[str] = None
    renderId: Optional[str] = None
    bucketName: Optional[str] = None
    regenerationHistory: List[RegenerationRecord] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=utcnow)
    updatedAt: datetime = Field(default_factory=utcnow)

    def touch(self) -> None:
        self.updatedAt = utcnow()

    def find_scene(self, scene_id: str) -> Optional[Scene]:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None


# ============================================================================
# Undo/redo history
# ============================================================================

class HistorySnapshot(BaseModel):
    scenes: List[Scene]
    sceneOrder: List[str]
    assets: ProjectAssets
    totalDuration: float = 0.0


class HistoryEntry(BaseModel):
    action: str
    timestamp: datetime = Field(default_factory=utcnow)
    changedFields: List[str] = Field(default_factory=list)
    snapshot: HistorySnapshot


class ProjectHistory(BaseModel):
    undoStack: List[HistoryEntry] = Field(default_factory=list)
    redoStack: List[HistoryEntry] = Field(default_factory=list)


class HistoryStatus(BaseModel):
    canUndo: bool = False
    canRedo: bool = False
    undoAction: Optional[str] = None
    redoAction: Optional[str] = None
    undoCount: int = 0
    redoCount: int = 0


# ============================================================================
# Video regeneration jobs
# ============================================================================

class VideoJob(BaseModel):
    jobId: str
    projectId: str
    sceneId: str
    provider: str
    prompt: str
    fallbackPrompt: Optional[str] = None
    imageUrl: Optional[str] = None
    duration: float = 6.0
    aspectRatio: str = "16:9"
    status: VideoJobStatus = VideoJobStatus.PENDING
    progress: int = Field(0, ge=0, le=100)
    videoUrl: Optional[str] = None
    errorMessage: Optional[str] = None
    triggeredBy: Optional[str] = None
    createdAt: datetime = Field(default_factory=utcnow)
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    # Set once the succeeded video has been merged into the scene
    applied: bool = False

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_JOB_STATUSES


# ============================================================================
# Quality gate
# ============================================================================

class QualityThresholds(BaseModel):
    minimumSceneScore: int = 70
    minimumProjectScore: int = 75
    maximumCriticalIssues: int = 0
    maximumMajorIssues: int = 3
    requireUserApproval: bool = True
    autoApproveScore: int = 85


class SceneQualityIssue(BaseModel):
    severity: str
    description: str


class SceneQualityStatus(BaseModel):
    sceneIndex: int
    sceneId: Optional[str] = None
    score: int
    status: Literal["approved", "needs_review", "rejected", "pending"]
    issues: List[SceneQualityIssue] = Field(default_factory=list)
    userApproved: bool = False
    autoApproved: bool = False
    regenerationCount: int = 0


class ProjectQualityReport(BaseModel):
    projectId: str
    overallScore: int
    sceneStatuses: List[SceneQualityStatus] = Field(default_factory=list)
    approvedCount: int = 0
    needsReviewCount: int = 0
    rejectedCount: int = 0
    pendingCount: int = 0
    criticalIssueCount: int = 0
    majorIssueCount: int = 0
    minorIssueCount: int = 0
    passesThreshold: bool = False
    canRender: bool = False
    blockingReasons: List[str] = Field(default_factory=list)
    lastAnalyzedAt: datetime = Field(default_factory=utcnow)
    lastApprovedAt: Optional[datetime] = None


# ============================================================================
# Render backend results
# ============================================================================

class RenderProgress(BaseModel):
    done: bool = False
    overallProgress: float = Field(0.0, ge=0.0, le=1.0)
    outputFile: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


# ============================================================================
# Requests
# ============================================================================

class ProductImageInput(BaseModel):
    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    isPrimary: bool = False


class ProductVideoRequest(BaseModel):
    """Request model for creating a product marketing video"""
    productName: str = Field(..., min_length=1, max_length=200)
    productDescription: str = Field(..., min_length=1, max_length=4000)
    targetAudience: str = Field("", max_length=500)
    benefits: List[str] = Field(..., min_length=1, max_length=10)
    duration: int = 30
    platform: Platform = "youtube"
    style: Literal["professional", "friendly", "energetic", "calm"] = "professional"
    callToAction: str = Field("Learn more today", min_length=1, max_length=200)
    productImages: List[ProductImageInput] = Field(default_factory=list)
    voiceId: Optional[str] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if v not in (30, 60, 90):
            raise ValueError("duration must be 30, 60 or 90 seconds")
        return v

    @field_validator("benefits")
    @classmethod
    def validate_benefits(cls, v):
        cleaned = [b.strip() for b in v if b and b.strip()]
        if not cleaned:
            raise ValueError("at least one non-empty benefit is required")
        return cleaned

    class Config:
        json_schema_extra = {
            "example": {
                "productName": "Farm Fresh Honey",
                "productDescription": "Raw wildflower honey from our own hives",
                "targetAudience": "Health-conscious families",
                "benefits": ["No additives", "Supports local bees"],
                "duration": 30,
                "platform": "instagram",
                "style": "friendly",
                "callToAction": "Visit our farm store",
            }
        }


class ScriptVideoRequest(BaseModel):
    """Request model for creating a video from a written script"""
    title: str = Field(..., min_length=1, max_length=200)
    script: str = Field(..., min_length=1, max_length=20000)
    platform: Platform = "youtube"
    style: Literal["professional", "casual", "energetic", "calm", "cinematic", "documentary"] = "professional"
    targetDuration: Optional[float] = Field(None, gt=0)
    voiceId: Optional[str] = None


class GenerateAssetsRequest(BaseModel):
    skipMusic: bool = False
    skipAnalysis: bool = False


class SceneOrderRequest(BaseModel):
    sceneOrder: List[str]

    class Config:
        json_schema_extra = {"example": {"sceneOrder": ["scene_c", "scene_a", "scene_b"]}}


class NarrationUpdateRequest(BaseModel):
    narration: str = Field(..., min_length=1, max_length=2000)


class VisualDirectionUpdateRequest(BaseModel):
    visualDirection: str = Field(..., max_length=2000)


class SetMediaRequest(BaseModel):
    mediaUrl: str = Field(..., min_length=1)
    mediaType: Literal["image", "video"]
    source: str = Field(..., min_length=1)


class ProductOverlayRequest(BaseModel):
    enabled: bool
    position: Optional[OverlayPosition] = None
    scale: Optional[float] = None
    animation: Optional[str] = None
    productImageId: Optional[str] = None


class RegenerateImageRequest(BaseModel):
    prompt: Optional[str] = None
    provider: Optional[str] = None


class RegenerateVideoRequest(BaseModel):
    query: Optional[str] = None
    provider: Optional[str] = None


class RegenerateVoiceoverRequest(BaseModel):
    voiceId: Optional[str] = None
    sceneIds: Optional[List[str]] = None


class RegenerateMusicRequest(BaseModel):
    style: Optional[str] = None
    mood: Optional[str] = None
    musicStyle: Optional[str] = None
    customPrompt: Optional[str] = None


class MusicVolumeRequest(BaseModel):
    volume: float


class RejectSceneRequest(BaseModel):
    reason: Optional[str] = None


class RenderRequest(BaseModel):
    force: bool = False


# ============================================================================
# Responses
# ============================================================================

class ProjectResponse(BaseModel):
    success: bool = True
    project: VideoProject
    message: Optional[str] = None
    historyStatus: Optional[HistoryStatus] = None


class ProjectListResponse(BaseModel):
    success: bool = True
    projects: List[VideoProject] = Field(default_factory=list)


class DeleteProjectResponse(BaseModel):
    success: bool = True
    projectId: str
    message: str = "Project deleted"


class HistoryResponse(HistoryStatus):
    success: bool = True


class UndoRedoResponse(BaseModel):
    success: bool = True
    undoneAction: Optional[str] = None
    redoneAction: Optional[str] = None
    historyStatus: HistoryStatus
    project: VideoProject


class AssetRegenerationResponse(BaseModel):
    success: bool = True
    url: Optional[str] = None
    duration: Optional[float] = None
    source: Optional[str] = None
    project: VideoProject
    historyStatus: Optional[HistoryStatus] = None


class VideoJobView(BaseModel):
    jobId: str
    status: VideoJobStatus
    progress: int
    provider: Optional[str] = None
    videoUrl: Optional[str] = None
    errorMessage: Optional[str] = None
    createdAt: Optional[datetime] = None
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None


class VideoJobCreatedResponse(BaseModel):
    success: bool = True
    jobId: str
    status: VideoJobStatus
    progress: int
    message: str


class VideoJobStatusResponse(BaseModel):
    success: bool = True
    job: VideoJobView
    project: Optional[VideoProject] = None


class ActiveJobsResponse(BaseModel):
    success: bool = True
    jobs: List[VideoJobView] = Field(default_factory=list)


class RenderStartResponse(BaseModel):
    success: bool = True
    renderId: str
    bucketName: str
    project: VideoProject


class RenderStatusResponse(BaseModel):
    success: bool
    done: bool = False
    progress: float = 0.0
    outputUrl: Optional[str] = None
    errors: List[str] = Field(default_factory=list)
    project: Optional[VideoProject] = None
    message: Optional[str] = None
    rateLimited: bool = False
    retryAfter: Optional[int] = None
    timeout: bool = False
    stalled: bool = False


class QualityReportResponse(BaseModel):
    success: bool = True
    report: ProjectQualityReport
    project: Optional[VideoProject] = None


class CanRenderResponse(BaseModel):
    success: bool = True
    allowed: bool
    reason: str
    canRender: bool
    blockingReasons: List[str] = Field(default_factory=list)
    overallScore: int = 0
    approvedCount: int = 0
    needsReviewCount: int = 0
    rejectedCount: int = 0


class SceneReviewResponse(BaseModel):
    success: bool = True
    sceneIndex: int
    approved: bool = False
    rejected: bool = False
    reason: Optional[str] = None
    project: VideoProject


class ApproveAllResponse(BaseModel):
    success: bool = True
    approvedCount: int
    project: VideoProject


class ServiceStatusResponse(BaseModel):
    success: bool = True
    services: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
