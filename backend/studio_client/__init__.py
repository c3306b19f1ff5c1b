"""
Async client for the Studio API: local project state, render and video-job
pollers, undo/redo and the pre-render quality summary.
"""

from studio_client.api import LOGIN_REDIRECT_DELAY, StudioClient
from studio_client.errors import StudioAPIError, UnauthorizedError
from studio_client.job_poller import JobOutcome, VideoJobPoller
from studio_client.notifications import Notice, Notifier
from studio_client.quality_gate import QualitySummary, summarize
from studio_client.render_poller import RenderOutcome, RenderPoller
from studio_client.state import ProjectState
from studio_client.undo_redo import UndoRedoController

__all__ = [
    "LOGIN_REDIRECT_DELAY",
    "StudioClient",
    "StudioAPIError",
    "UnauthorizedError",
    "JobOutcome",
    "VideoJobPoller",
    "Notice",
    "Notifier",
    "QualitySummary",
    "summarize",
    "RenderOutcome",
    "RenderPoller",
    "ProjectState",
    "UndoRedoController",
]
