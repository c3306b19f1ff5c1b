"""
Local copy of the project being edited.

The server is the source of truth: every response that carries a project
replaces the local one wholesale. Listeners are told after each replace.
"""

from typing import Callable, List, Optional

from video_schemas import HistoryStatus, Scene, VideoProject

StateListener = Callable[[Optional[VideoProject]], None]


class ProjectState:
    def __init__(self, project: Optional[VideoProject] = None):
        self._project = project
        self._history = HistoryStatus()
        self._listeners: List[StateListener] = []
        self.version = 0

    @property
    def project(self) -> Optional[VideoProject]:
        return self._project

    @property
    def project_id(self) -> Optional[str]:
        return self._project.id if self._project else None

    @property
    def history_status(self) -> HistoryStatus:
        return self._history

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, project: VideoProject, history_status: Optional[HistoryStatus] = None) -> None:
        self._project = project
        if history_status is not None:
            self._history = history_status
        self.version += 1
        self._emit()

    def set_history_status(self, history_status: HistoryStatus) -> None:
        self._history = history_status
        self._emit()

    def clear(self) -> None:
        self._project = None
        self._history = HistoryStatus()
        self.version += 1
        self._emit()

    def scene(self, scene_id: str) -> Optional[Scene]:
        if self._project is None:
            return None
        return self._project.find_scene(scene_id)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._project)
