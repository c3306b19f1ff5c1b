"""
Video Jobs API Router.

Per-scene video regeneration runs as an asynchronous job. Clients create
the job, then poll it; the first poll that sees it succeeded switches the
scene background to the new video and returns the updated project.
"""

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends

from pipeline.error_handler import JobNotFoundError, StudioError
from routers.dependencies import (
    current_user_id,
    get_jobs,
    get_provider_set,
    get_store,
    load_project,
    to_http_exception,
)
from services.job_store import JobStore
from services.project_store import ProjectStore
from services.providers import ProviderSet
from studio.scene_graph import get_scene
from video_schemas import (
    ActiveJobsResponse,
    RegenerateVideoRequest,
    VideoJob,
    VideoJobCreatedResponse,
    VideoJobStatus,
    VideoJobStatusResponse,
    VideoJobView,
)
from workers.video_job_worker import (
    apply_succeeded_job,
    cancel_video_job,
    process_video_job,
    submit_video_job,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/video/projects/{project_id}/scenes/{scene_id}", tags=["Video Jobs"])


def job_view(job: VideoJob) -> VideoJobView:
    return VideoJobView(
        jobId=job.jobId,
        status=job.status,
        progress=job.progress,
        provider=job.provider,
        videoUrl=job.videoUrl,
        errorMessage=job.errorMessage,
        createdAt=job.createdAt,
        startedAt=job.startedAt,
        completedAt=job.completedAt,
    )


def _load_job(jobs: JobStore, job_id: str, project_id: str, scene_id: str) -> VideoJob:
    job = jobs.get(job_id)
    if job.projectId != project_id or job.sceneId != scene_id:
        raise JobNotFoundError(job_id)
    return job


@router.post("/regenerate-video", response_model=VideoJobCreatedResponse, status_code=202)
async def regenerate_scene_video(
    project_id: str,
    scene_id: str,
    request: RegenerateVideoRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    jobs: JobStore = Depends(get_jobs),
    providers: ProviderSet = Depends(get_provider_set),
):
    """
    Queue a video regeneration job for the scene.

    If the scene already has a pending or running job, that job is returned
    instead of starting another one.
    """
    try:
        project = load_project(store, project_id, user_id)
        job, created = submit_video_job(
            project,
            scene_id,
            jobs,
            query=request.query,
            provider=request.provider,
            triggered_by=user_id,
        )
    except StudioError as e:
        raise to_http_exception(e)

    if created:
        background_tasks.add_task(process_video_job, job.jobId, jobs, providers.video)
        message = "Video regeneration started"
    else:
        message = "Video regeneration already in progress"

    return VideoJobCreatedResponse(jobId=job.jobId, status=job.status, progress=job.progress, message=message)


@router.get("/video-job/{job_id}", response_model=VideoJobStatusResponse)
async def get_video_job(
    project_id: str,
    scene_id: str,
    job_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    jobs: JobStore = Depends(get_jobs),
):
    try:
        project = load_project(store, project_id, user_id)
        job = _load_job(jobs, job_id, project_id, scene_id)
        if apply_succeeded_job(project, job):
            store.save(project)
            jobs.save(job)
    except StudioError as e:
        raise to_http_exception(e)

    include_project = job.status == VideoJobStatus.SUCCEEDED
    return VideoJobStatusResponse(job=job_view(job), project=project if include_project else None)


@router.post("/video-job/{job_id}/cancel", response_model=VideoJobStatusResponse)
async def cancel_job(
    project_id: str,
    scene_id: str,
    job_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    jobs: JobStore = Depends(get_jobs),
):
    try:
        load_project(store, project_id, user_id)
        job = cancel_video_job(_load_job(jobs, job_id, project_id, scene_id), jobs)
    except StudioError as e:
        raise to_http_exception(e)
    return VideoJobStatusResponse(job=job_view(job))


@router.get("/active-jobs", response_model=ActiveJobsResponse)
async def list_active_jobs(
    project_id: str,
    scene_id: str,
    user_id: str = Depends(current_user_id),
    store: ProjectStore = Depends(get_store),
    jobs: JobStore = Depends(get_jobs),
):
    """Pending and running jobs for the scene, oldest first."""
    try:
        project = load_project(store, project_id, user_id)
        get_scene(project, scene_id)
        active = jobs.active_for_scene(project_id, scene_id)
    except StudioError as e:
        raise to_http_exception(e)
    return ActiveJobsResponse(jobs=[job_view(job) for job in active])
