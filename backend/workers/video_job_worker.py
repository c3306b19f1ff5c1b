"""
Worker functions for per-scene video regeneration jobs.

A job is created by the regenerate-video endpoint and processed in the
background. The project is only touched when a client reads a succeeded
job (see apply_succeeded_job), so a job finishing while the user edits the
project never overwrites their edits mid-request.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import structlog

from config import settings
from pipeline.error_handler import ErrorCode, InvalidStateError, ProviderError
from services.job_store import JobStore
from services.providers import VideoProvider
from studio.scene_graph import get_scene
from video_schemas import (
    AlternativeAsset,
    RegenerationRecord,
    SceneBackground,
    TERMINAL_JOB_STATUSES,
    VideoJob,
    VideoJobStatus,
    VideoProject,
)

logger = structlog.get_logger()


def submit_video_job(
    project: VideoProject,
    scene_id: str,
    store: JobStore,
    query: Optional[str] = None,
    provider: Optional[str] = None,
    triggered_by: Optional[str] = None,
) -> Tuple[VideoJob, bool]:
    """
    Create a pending job for the scene.

    Returns:
        (job, created) - when the scene already has an active job that job is
        returned with created=False and nothing new is queued
    """
    scene = get_scene(project, scene_id)

    active = store.active_for_scene(project.id, scene.id)
    if active:
        existing = active[-1]
        logger.info(
            "video_job_already_active",
            project_id=project.id,
            scene_id=scene.id,
            job_id=existing.jobId,
            status=existing.status.value,
        )
        return existing, False

    prompt = (query or "").strip() or scene.visualDirection or scene.narration
    fallback = scene.narration if scene.narration and scene.narration != prompt else None

    job = VideoJob(
        jobId=f"vjob_{uuid.uuid4().hex[:16]}",
        projectId=project.id,
        sceneId=scene.id,
        provider=provider or settings.VIDEO_JOB_DEFAULT_PROVIDER,
        prompt=prompt,
        fallbackPrompt=fallback,
        imageUrl=scene.background.imageUrl or scene.assets.imageUrl,
        duration=scene.duration,
        aspectRatio=project.outputFormat.aspectRatio,
        triggeredBy=triggered_by,
    )
    store.save(job)
    logger.info("video_job_submitted", project_id=project.id, scene_id=scene.id, job_id=job.jobId)
    return job, True


async def process_video_job(job_id: str, store: JobStore, provider: VideoProvider) -> Dict[str, Any]:
    """
    Run one video job to completion.

    This worker:
    1. Marks the job running
    2. Generates the clip from the prompt (and the scene image, when present)
    3. Retries once with the fallback prompt if the first attempt fails
    4. Stores videoUrl or errorMessage

    A job cancelled while the provider was working keeps its cancelled state.

    Returns:
        Dict with job result
    """
    log = logger.bind(job_id=job_id)
    job = store.get(job_id)
    if job.status != VideoJobStatus.PENDING:
        log.info("video_job_skipped", status=job.status.value)
        return {"status": job.status.value, "jobId": job_id}

    job.status = VideoJobStatus.RUNNING
    job.progress = 10
    job.startedAt = datetime.now(timezone.utc)
    store.save(job)
    log.info("video_job_start", project_id=job.projectId, scene_id=job.sceneId, provider=job.provider)

    video_url = None
    error_message = None
    prompts = [job.prompt] + ([job.fallbackPrompt] if job.fallbackPrompt else [])
    for attempt, prompt in enumerate(prompts, start=1):
        try:
            asset = await provider.generate(
                prompt=prompt,
                duration=job.duration,
                aspect_ratio=job.aspectRatio,
                image_url=job.imageUrl,
            )
        except ProviderError as e:
            error_message = e.message
            log.warning("video_job_attempt_failed", attempt=attempt, error=e.message)
            continue
        video_url = asset.url
        break

    # Re-read so a cancel issued meanwhile wins
    job = store.get(job_id)
    if job.status == VideoJobStatus.CANCELLED:
        log.info("video_job_cancelled_during_generation")
        return {"status": job.status.value, "jobId": job_id}

    job.completedAt = datetime.now(timezone.utc)
    if video_url:
        job.status = VideoJobStatus.SUCCEEDED
        job.progress = 100
        job.videoUrl = video_url
        job.errorMessage = None
        log.info("video_job_succeeded", video_url=video_url)
    else:
        job.status = VideoJobStatus.FAILED
        job.errorMessage = error_message or "Video generation failed"
        log.error("video_job_failed", error=job.errorMessage)
    store.save(job)

    return {
        "status": job.status.value,
        "jobId": job_id,
        "videoUrl": job.videoUrl,
        "error": job.errorMessage,
    }


def apply_succeeded_job(project: VideoProject, job: VideoJob) -> bool:
    """
    Merge a succeeded job's video into its scene, once.

    The previous video (if any) moves to the scene's alternativeVideos.

    Returns:
        True if the project was modified and must be saved
    """
    if job.status != VideoJobStatus.SUCCEEDED or job.applied or not job.videoUrl:
        return False

    scene = get_scene(project, job.sceneId)
    previous = scene.background.videoUrl or scene.assets.videoUrl
    if previous and previous != job.videoUrl and all(alt.url != previous for alt in scene.assets.alternativeVideos):
        scene.assets.alternativeVideos.append(
            AlternativeAsset(url=previous, prompt=scene.background.prompt, source=scene.background.source)
        )

    scene.background = SceneBackground(
        type="video",
        source=job.provider,
        imageUrl=scene.background.imageUrl,
        videoUrl=job.videoUrl,
        prompt=job.prompt,
    )
    scene.assets.videoUrl = job.videoUrl
    scene.regenerationCount += 1

    project.regenerationHistory.append(RegenerationRecord(
        id=f"regen_{uuid.uuid4().hex[:12]}",
        sceneId=scene.id,
        assetType="video",
        previousUrl=previous,
        newUrl=job.videoUrl,
        prompt=job.prompt,
    ))
    project.touch()
    job.applied = True
    logger.info("video_job_applied", project_id=project.id, scene_id=scene.id, job_id=job.jobId)
    return True


def cancel_video_job(job: VideoJob, store: JobStore) -> VideoJob:
    """
    Raises:
        InvalidStateError: If the job already finished
    """
    if job.status in TERMINAL_JOB_STATUSES:
        raise InvalidStateError(
            f"Video job {job.jobId} already {job.status.value}",
            code=ErrorCode.JOB_ALREADY_FINISHED,
            details={"jobId": job.jobId, "status": job.status.value},
        )
    job.status = VideoJobStatus.CANCELLED
    job.completedAt = datetime.now(timezone.utc)
    store.save(job)
    logger.info("video_job_cancelled", job_id=job.jobId, project_id=job.projectId, scene_id=job.sceneId)
    return job
