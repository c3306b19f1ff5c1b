"""
Snapshot-based undo/redo for scene edits.

Each history-recording edit pushes a snapshot of the editable state
(scenes, sceneOrder, assets, totalDuration) before it mutates the project.
"""

from typing import List, Optional

from config import settings
from pipeline.error_handler import ErrorCode, InvalidStateError
from studio.scene_graph import normalize_order
from video_schemas import (
    HistoryEntry,
    HistorySnapshot,
    HistoryStatus,
    ProjectHistory,
    VideoProject,
)


def take_snapshot(project: VideoProject) -> HistorySnapshot:
    return HistorySnapshot(
        scenes=[scene.model_copy(deep=True) for scene in project.scenes],
        sceneOrder=list(project.sceneOrder),
        assets=project.assets.model_copy(deep=True),
        totalDuration=project.totalDuration,
    )


def restore_snapshot(project: VideoProject, snapshot: HistorySnapshot) -> VideoProject:
    project.scenes = [scene.model_copy(deep=True) for scene in snapshot.scenes]
    project.assets = snapshot.assets.model_copy(deep=True)
    return normalize_order(project)


def _trim(stack: List[HistoryEntry], limit: int) -> None:
    overflow = len(stack) - limit
    if overflow > 0:
        del stack[:overflow]


def push_to_history(
    history: ProjectHistory,
    project: VideoProject,
    action: str,
    changed_fields: Optional[List[str]] = None,
    limit: Optional[int] = None,
) -> HistoryEntry:
    """
    Record the project's current state under `action`.

    Clears the redo stack; drops the oldest entry past `limit`.
    """
    entry = HistoryEntry(
        action=action,
        changedFields=changed_fields or ["scenes"],
        snapshot=take_snapshot(project),
    )
    history.undoStack.append(entry)
    history.redoStack.clear()
    _trim(history.undoStack, settings.HISTORY_LIMIT if limit is None else limit)
    return entry


def undo(history: ProjectHistory, project: VideoProject, limit: Optional[int] = None) -> str:
    """
    Restore the most recent snapshot; the current state moves to redo.

    Returns:
        The undone action name

    Raises:
        InvalidStateError: If there is nothing to undo
    """
    if not history.undoStack:
        raise InvalidStateError("Nothing to undo", code=ErrorCode.NOTHING_TO_UNDO)

    entry = history.undoStack.pop()
    history.redoStack.append(HistoryEntry(
        action=entry.action,
        changedFields=entry.changedFields,
        snapshot=take_snapshot(project),
    ))
    _trim(history.redoStack, settings.HISTORY_LIMIT if limit is None else limit)
    restore_snapshot(project, entry.snapshot)
    return entry.action


def redo(history: ProjectHistory, project: VideoProject, limit: Optional[int] = None) -> str:
    """
    Re-apply the most recently undone edit.

    Raises:
        InvalidStateError: If there is nothing to redo
    """
    if not history.redoStack:
        raise InvalidStateError("Nothing to redo", code=ErrorCode.NOTHING_TO_REDO)

    entry = history.redoStack.pop()
    history.undoStack.append(HistoryEntry(
        action=entry.action,
        changedFields=entry.changedFields,
        snapshot=take_snapshot(project),
    ))
    _trim(history.undoStack, settings.HISTORY_LIMIT if limit is None else limit)
    restore_snapshot(project, entry.snapshot)
    return entry.action


def history_status(history: ProjectHistory) -> HistoryStatus:
    return HistoryStatus(
        canUndo=bool(history.undoStack),
        canRedo=bool(history.redoStack),
        undoAction=history.undoStack[-1].action if history.undoStack else None,
        redoAction=history.redoStack[-1].action if history.redoStack else None,
        undoCount=len(history.undoStack),
        redoCount=len(history.redoStack),
    )
