"""
Tests for the full asset generation worker.
"""

import pytest
from unittest.mock import AsyncMock, patch

from pipeline.error_handler import StudioError, ErrorCode
from tests.factories import build_project
from video_schemas import ProjectStatus
from workers.generation_worker import process_generation_job


@pytest.mark.asyncio
async def test_generation_completes(store):
    project = build_project(2, status=ProjectStatus.GENERATING, with_media=False)
    store.save(project)

    result = await process_generation_job(project.id)

    assert result == {"status": "completed", "project_id": project.id}
    assert store.get(project.id).status == ProjectStatus.READY


@pytest.mark.asyncio
async def test_generation_step_failure_reported(store, fail_providers):
    fail_providers("voiceover")
    project = build_project(2, status=ProjectStatus.GENERATING, with_media=False)
    store.save(project)

    result = await process_generation_job(project.id, skip_music=True)

    assert result["status"] == "failed"
    assert store.get(project.id).status == ProjectStatus.ERROR


@pytest.mark.asyncio
async def test_unexpected_studio_error_marks_project(store):
    project = build_project(1, status=ProjectStatus.GENERATING)
    store.save(project)
    boom = StudioError(ErrorCode.DATABASE_ERROR, "table unavailable")

    with patch("workers.generation_worker.create_pipeline_orchestrator") as factory:
        factory.return_value.execute_pipeline = AsyncMock(side_effect=boom)
        result = await process_generation_job(project.id)

    saved = store.get(project.id)
    assert result == {"status": "failed", "error": "table unavailable"}
    assert saved.status == ProjectStatus.ERROR
    assert saved.progress.errors == [boom.get_user_friendly_message()]


@pytest.mark.asyncio
async def test_deleted_project_does_not_raise(store):
    result = await process_generation_job("proj_gone")
    assert result["status"] == "failed"
