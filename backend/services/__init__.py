"""
Services module: project and job storage, generation providers, render backend
"""

from .job_store import JobStore, get_job_store
from .project_store import ProjectStore, get_project_store
from .providers import ProviderSet, get_providers
from .render_backend import RenderBackend, get_render_backend

__all__ = [
    "JobStore",
    "get_job_store",
    "ProjectStore",
    "get_project_store",
    "ProviderSet",
    "get_providers",
    "RenderBackend",
    "get_render_backend",
]
