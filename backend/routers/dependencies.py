"""
Shared FastAPI dependencies and helpers for the /api/video routers.
"""

from typing import List, Optional

from fastapi import Header, HTTPException

from pipeline.error_handler import ForbiddenError, StudioError
from services.job_store import JobStore, get_job_store
from services.project_store import ProjectStore, get_project_store
from services.providers import ProviderSet, get_providers
from services.render_backend import RenderBackend, get_render_backend
from studio.history import history_status, push_to_history
from video_schemas import HistoryStatus, ProjectHistory, VideoProject

USER_ID_HEADER = "X-User-Id"
ANONYMOUS_USER = "anonymous"


def get_store() -> ProjectStore:
    return get_project_store()


def get_jobs() -> JobStore:
    return get_job_store()


def get_provider_set() -> ProviderSet:
    return get_providers()


def get_renderer() -> RenderBackend:
    return get_render_backend()


async def current_user_id(x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)) -> str:
    """Caller identity; requests without the header act as the anonymous user."""
    return (x_user_id or "").strip() or ANONYMOUS_USER


def to_http_exception(error: StudioError) -> HTTPException:
    error.log_error()
    return HTTPException(status_code=error.http_status, detail=error.to_dict())


def load_project(store: ProjectStore, project_id: str, user_id: str) -> VideoProject:
    """
    Raises:
        ProjectNotFoundError: Unknown project
        ForbiddenError: Project belongs to someone else
    """
    project = store.get(project_id)
    if project.ownerId != user_id:
        raise ForbiddenError(project_id)
    return project


def record_history(
    store: ProjectStore,
    project: VideoProject,
    action: str,
    changed_fields: Optional[List[str]] = None,
) -> ProjectHistory:
    """
    Snapshot the project before an edit. The returned history is saved by
    save_with_history once the edit succeeded.
    """
    history = store.get_history(project.id)
    push_to_history(history, project, action, changed_fields)
    return history


def save_with_history(store: ProjectStore, project: VideoProject, history: ProjectHistory) -> HistoryStatus:
    store.save(project)
    store.save_history(project.id, history)
    return history_status(history)
