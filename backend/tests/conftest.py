"""
Shared fixtures: in-memory stores, mock providers, and project builders.
"""

import os
import sys

# Must be set before config is imported anywhere
os.environ["PROJECT_STORE_BACKEND"] = "memory"
os.environ["JOB_STORE_BACKEND"] = "memory"

_backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

import pytest

from config import settings
from services.job_store import get_job_store, reset_job_store
from services.project_store import get_project_store, reset_project_store
from services.providers import set_providers
from services.render_backend import set_render_backend
from tests.factories import build_project


@pytest.fixture(autouse=True)
def isolated_backends(monkeypatch):
    """Fresh memory stores, default providers and no injected failures per test."""
    monkeypatch.setattr(settings, "PROJECT_STORE_BACKEND", "memory")
    monkeypatch.setattr(settings, "JOB_STORE_BACKEND", "memory")
    monkeypatch.setattr(settings, "MOCK_FAILING_PROVIDERS", None)
    monkeypatch.delenv("API_KEY", raising=False)
    reset_project_store()
    reset_job_store()
    set_providers(None)
    set_render_backend(None)
    yield
    reset_project_store()
    reset_job_store()
    set_providers(None)
    set_render_backend(None)


@pytest.fixture
def fail_providers(monkeypatch):
    """Call with provider kinds to make the mock providers fail, e.g. fail_providers("image")."""

    def _fail(*kinds):
        monkeypatch.setattr(settings, "MOCK_FAILING_PROVIDERS", ",".join(kinds))

    return _fail


@pytest.fixture
def store():
    return get_project_store()


@pytest.fixture
def jobs():
    return get_job_store()


@pytest.fixture
def project():
    return build_project()


@pytest.fixture
def saved_project(store):
    project = build_project()
    store.save(project)
    return project
