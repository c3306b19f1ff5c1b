"""
Persistence for the VideoProject aggregate and its undo/redo history.

Provides a common interface over DynamoDB (production) and an in-process
dictionary (local development and tests).

Usage:
    >>> store = get_project_store()
    >>> store.save(project)
    >>> project = store.get(project.id)
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import structlog
from pynamodb.exceptions import DoesNotExist, PynamoDBException

from config import settings
from pipeline.error_handler import ErrorCode, ProjectNotFoundError, StudioError
from video_schemas import ProjectHistory, VideoProject

logger = structlog.get_logger()


class ProjectStore(ABC):
    """
    Abstract interface for project persistence.
    """

    @abstractmethod
    def get(self, project_id: str) -> VideoProject:
        """
        Load a project.

        Raises:
            ProjectNotFoundError: If no project has this id
        """
        pass

    @abstractmethod
    def save(self, project: VideoProject) -> VideoProject:
        """
        Insert or replace a project. History is left untouched.
        """
        pass

    @abstractmethod
    def delete(self, project_id: str) -> None:
        """
        Delete a project and its history.

        Raises:
            ProjectNotFoundError: If no project has this id
        """
        pass

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[VideoProject]:
        """
        List an owner's projects, newest first.
        """
        pass

    @abstractmethod
    def get_history(self, project_id: str) -> ProjectHistory:
        pass

    @abstractmethod
    def save_history(self, project_id: str, history: ProjectHistory) -> None:
        pass


class MemoryProjectStore(ProjectStore):
    """
    Dictionary-backed store. Values are deep-copied so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._projects: Dict[str, VideoProject] = {}
        self._history: Dict[str, ProjectHistory] = {}
        self._lock = threading.Lock()

    def get(self, project_id: str) -> VideoProject:
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)
            return project.model_copy(deep=True)

    def save(self, project: VideoProject) -> VideoProject:
        with self._lock:
            self._projects[project.id] = project.model_copy(deep=True)
        return project

    def delete(self, project_id: str) -> None:
        with self._lock:
            if project_id not in self._projects:
                raise ProjectNotFoundError(project_id)
            del self._projects[project_id]
            self._history.pop(project_id, None)

    def list_for_owner(self, owner_id: str) -> List[VideoProject]:
        with self._lock:
            projects = [p.model_copy(deep=True) for p in self._projects.values() if p.ownerId == owner_id]
        return sorted(projects, key=lambda p: p.createdAt, reverse=True)

    def get_history(self, project_id: str) -> ProjectHistory:
        with self._lock:
            history = self._history.get(project_id)
            return history.model_copy(deep=True) if history else ProjectHistory()

    def save_history(self, project_id: str, history: ProjectHistory) -> None:
        with self._lock:
            self._history[project_id] = history.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._projects.clear()
            self._history.clear()


class DynamoProjectStore(ProjectStore):
    """
    PynamoDB-backed store (single item per project, SK=METADATA).
    """

    def _get_item(self, project_id: str):
        from video_models import VideoProjectItem, project_pk

        try:
            return VideoProjectItem.get(project_pk(project_id), "METADATA")
        except DoesNotExist:
            raise ProjectNotFoundError(project_id)
        except PynamoDBException as e:
            logger.error("dynamodb_get_failed", project_id=project_id, error=str(e))
            raise StudioError(ErrorCode.DATABASE_ERROR, str(e), {"projectId": project_id})

    def get(self, project_id: str) -> VideoProject:
        return self._get_item(project_id).to_project()

    def save(self, project: VideoProject) -> VideoProject:
        from video_models import create_project_item

        try:
            try:
                item = self._get_item(project.id)
                item.apply_project(project)
            except ProjectNotFoundError:
                item = create_project_item(project)
            item.save()
        except PynamoDBException as e:
            logger.error("dynamodb_save_failed", project_id=project.id, error=str(e))
            raise StudioError(ErrorCode.DATABASE_ERROR, str(e), {"projectId": project.id})

        logger.debug("project_saved", project_id=project.id, status=project.status.value)
        return project

    def delete(self, project_id: str) -> None:
        item = self._get_item(project_id)
        try:
            item.delete()
        except PynamoDBException as e:
            logger.error("dynamodb_delete_failed", project_id=project_id, error=str(e))
            raise StudioError(ErrorCode.DATABASE_ERROR, str(e), {"projectId": project_id})

    def list_for_owner(self, owner_id: str) -> List[VideoProject]:
        from video_models import VideoProjectItem

        # Owner is not indexed; project counts per deployment are small
        try:
            items = VideoProjectItem.scan(
                (VideoProjectItem.entityType == "project") & (VideoProjectItem.ownerId == owner_id)
            )
            projects = [item.to_project() for item in items]
        except PynamoDBException as e:
            logger.error("dynamodb_scan_failed", owner_id=owner_id, error=str(e))
            raise StudioError(ErrorCode.DATABASE_ERROR, str(e), {"ownerId": owner_id})
        return sorted(projects, key=lambda p: p.createdAt, reverse=True)

    def get_history(self, project_id: str) -> ProjectHistory:
        return self._get_item(project_id).to_history()

    def save_history(self, project_id: str, history: ProjectHistory) -> None:
        from video_models import VideoProjectItem

        item = self._get_item(project_id)
        try:
            item.update(actions=[VideoProjectItem.history.set(history.model_dump(mode="json"))])
        except PynamoDBException as e:
            logger.error("dynamodb_history_save_failed", project_id=project_id, error=str(e))
            raise StudioError(ErrorCode.DATABASE_ERROR, str(e), {"projectId": project_id})


_project_store: Optional[ProjectStore] = None


def get_project_store() -> ProjectStore:
    """
    Factory returning the configured project store.

    Returns:
        DynamoProjectStore or MemoryProjectStore based on PROJECT_STORE_BACKEND

    Raises:
        ValueError: If PROJECT_STORE_BACKEND is not recognised
    """
    global _project_store
    if _project_store is not None:
        return _project_store

    backend = settings.PROJECT_STORE_BACKEND.lower()
    if backend == "dynamodb":
        _project_store = DynamoProjectStore()
    elif backend == "memory":
        _project_store = MemoryProjectStore()
    else:
        raise ValueError(f"Unsupported PROJECT_STORE_BACKEND: {backend}. Use 'dynamodb' or 'memory'.")

    logger.info("project_store_selected", backend=backend)
    return _project_store


def reset_project_store() -> None:
    """Drop the cached store so the next call re-reads settings."""
    global _project_store
    _project_store = None
