"""
Storage for per-scene video regeneration jobs.

Jobs are short-lived, so the Redis backend stores each one as a JSON blob
with a TTL plus a per-scene index set used to find active jobs.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import structlog
from redis.exceptions import RedisError

from config import settings
from pipeline.error_handler import ErrorCode, JobNotFoundError, StudioError
from video_schemas import VideoJob

logger = structlog.get_logger()


class JobStore(ABC):
    """
    Abstract interface for video job persistence.
    """

    @abstractmethod
    def get(self, job_id: str) -> VideoJob:
        """
        Raises:
            JobNotFoundError: If the job does not exist (or expired)
        """
        pass

    @abstractmethod
    def save(self, job: VideoJob) -> VideoJob:
        pass

    @abstractmethod
    def list_for_scene(self, project_id: str, scene_id: str) -> List[VideoJob]:
        """
        All known jobs for a scene, oldest first.
        """
        pass

    def active_for_scene(self, project_id: str, scene_id: str) -> List[VideoJob]:
        return [job for job in self.list_for_scene(project_id, scene_id) if job.is_active]


class MemoryJobStore(JobStore):
    def __init__(self):
        self._jobs: Dict[str, VideoJob] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> VideoJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return job.model_copy(deep=True)

    def save(self, job: VideoJob) -> VideoJob:
        with self._lock:
            self._jobs[job.jobId] = job.model_copy(deep=True)
        return job

    def list_for_scene(self, project_id: str, scene_id: str) -> List[VideoJob]:
        with self._lock:
            jobs = [
                j.model_copy(deep=True) for j in self._jobs.values()
                if j.projectId == project_id and j.sceneId == scene_id
            ]
        return sorted(jobs, key=lambda j: j.createdAt)

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()


class RedisJobStore(JobStore):
    """
    Keys:
        video_job:<jobId>                      JSON job record
        video_jobs:<projectId>:<sceneId>       set of job ids
    """

    def __init__(self, client=None, ttl: Optional[int] = None):
        if client is None:
            from redis_client import get_redis_client
            client = get_redis_client()
        self._redis = client
        self._ttl = ttl or settings.VIDEO_JOB_TTL

    @staticmethod
    def _job_key(job_id: str) -> str:
        return f"video_job:{job_id}"

    @staticmethod
    def _scene_key(project_id: str, scene_id: str) -> str:
        return f"video_jobs:{project_id}:{scene_id}"

    def get(self, job_id: str) -> VideoJob:
        try:
            data = self._redis.get_json(self._job_key(job_id))
        except RedisError as e:
            logger.error("video_job_get_failed", job_id=job_id, error=str(e))
            raise StudioError(ErrorCode.REDIS_CONNECTION_ERROR, str(e), {"jobId": job_id})
        if data is None:
            raise JobNotFoundError(job_id)
        return VideoJob.model_validate(data)

    def save(self, job: VideoJob) -> VideoJob:
        try:
            self._redis.set_json(self._job_key(job.jobId), job.model_dump(mode="json"), ttl=self._ttl)
            self._redis.add_to_index(self._scene_key(job.projectId, job.sceneId), job.jobId, ttl=self._ttl)
        except RedisError as e:
            logger.error("video_job_save_failed", job_id=job.jobId, error=str(e))
            raise StudioError(ErrorCode.REDIS_CONNECTION_ERROR, str(e), {"jobId": job.jobId})
        return job

    def list_for_scene(self, project_id: str, scene_id: str) -> List[VideoJob]:
        scene_key = self._scene_key(project_id, scene_id)
        jobs = []
        try:
            for job_id in self._redis.index_members(scene_key):
                data = self._redis.get_json(self._job_key(job_id))
                if data is None:
                    # Expired; drop the dangling index entry
                    self._redis.remove_from_index(scene_key, job_id)
                    continue
                jobs.append(VideoJob.model_validate(data))
        except RedisError as e:
            logger.error("video_job_list_failed", project_id=project_id, scene_id=scene_id, error=str(e))
            raise StudioError(ErrorCode.REDIS_CONNECTION_ERROR, str(e), {"sceneId": scene_id})
        return sorted(jobs, key=lambda j: j.createdAt)


_job_store: Optional[JobStore] = None


def get_job_store() -> JobStore:
    """
    Factory returning the configured job store (JOB_STORE_BACKEND).

    Raises:
        ValueError: If JOB_STORE_BACKEND is not recognised
    """
    global _job_store
    if _job_store is not None:
        return _job_store

    backend = settings.JOB_STORE_BACKEND.lower()
    if backend == "redis":
        _job_store = RedisJobStore()
    elif backend == "memory":
        _job_store = MemoryJobStore()
    else:
        raise ValueError(f"Unsupported JOB_STORE_BACKEND: {backend}. Use 'redis' or 'memory'.")

    logger.info("job_store_selected", backend=backend)
    return _job_store


def reset_job_store() -> None:
    global _job_store
    _job_store = None
