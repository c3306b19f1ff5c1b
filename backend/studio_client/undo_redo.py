"""
Undo/redo controller.

The history lives on the server; this only issues the commands, mirrors the
server's history status, and maps the keyboard shortcuts.
"""

from typing import Optional

import structlog

from studio_client.api import StudioClient
from video_schemas import UndoRedoResponse

logger = structlog.get_logger(__name__)

UNDO_SHORTCUT = frozenset({"ctrl", "z"})
REDO_SHORTCUT = frozenset({"ctrl", "shift", "z"})
_KEY_ALIASES = {"meta": "ctrl", "cmd": "ctrl", "command": "ctrl", "control": "ctrl"}


def parse_shortcut(combo: str) -> frozenset:
    """'Meta+Shift+Z' -> {'ctrl', 'shift', 'z'}"""
    keys = [part.strip().lower() for part in combo.replace("-", "+").split("+") if part.strip()]
    return frozenset(_KEY_ALIASES.get(key, key) for key in keys)


class UndoRedoController:
    def __init__(self, client: StudioClient):
        self.client = client

    @property
    def project_id(self) -> Optional[str]:
        return self.client.state.project_id

    @property
    def can_undo(self) -> bool:
        return self.client.state.history_status.canUndo

    @property
    def can_redo(self) -> bool:
        return self.client.state.history_status.canRedo

    @property
    def undo_action(self) -> Optional[str]:
        return self.client.state.history_status.undoAction

    @property
    def redo_action(self) -> Optional[str]:
        return self.client.state.history_status.redoAction

    async def refresh(self) -> None:
        if self.project_id:
            await self.client.get_history(self.project_id)

    async def undo(self) -> Optional[UndoRedoResponse]:
        if not self.can_undo or not self.project_id:
            return None
        result = await self.client.undo(self.project_id)
        self.client.notifier.success("Undone", result.undoneAction)
        return result

    async def redo(self) -> Optional[UndoRedoResponse]:
        if not self.can_redo or not self.project_id:
            return None
        result = await self.client.redo(self.project_id)
        self.client.notifier.success("Redone", result.redoneAction)
        return result

    async def handle_key(self, combo: str) -> Optional[UndoRedoResponse]:
        """
        Ctrl+Z undoes and Ctrl+Shift+Z redoes (Meta counts as Ctrl).
        Anything else is ignored.
        """
        keys = parse_shortcut(combo)
        if keys == UNDO_SHORTCUT:
            return await self.undo()
        if keys == REDO_SHORTCUT:
            return await self.redo()
        logger.debug("shortcut_ignored", combo=combo)
        return None
