"""
Worker function for full asset generation.

Triggered by the generate-assets endpoint as a background task.
"""

from typing import Any, Dict

import structlog

from pipeline.error_handler import StudioError
from pipeline.orchestrator import create_pipeline_orchestrator
from services.project_store import get_project_store
from video_schemas import ProjectStatus

logger = structlog.get_logger()


async def process_generation_job(
    project_id: str,
    skip_music: bool = False,
    skip_analysis: bool = False,
) -> Dict[str, Any]:
    """
    Generate every asset for a project.

    Args:
        project_id: Project id
        skip_music: Mark the music step skipped and disable music
        skip_analysis: Mark the qa step skipped

    Returns:
        Dict with job result
    """
    logger.info("generation_job_start", project_id=project_id)
    store = get_project_store()
    try:
        orchestrator = create_pipeline_orchestrator(project_id, store=store)
        project = await orchestrator.execute_pipeline(skip_music=skip_music, skip_analysis=skip_analysis)
    except StudioError as e:
        e.log_error()
        # The project may have been deleted meanwhile; only flag it if it still exists
        try:
            project = store.get(project_id)
        except StudioError:
            return {"status": "failed", "error": e.message}
        project.status = ProjectStatus.ERROR
        project.progress.errors.append(e.get_user_friendly_message())
        project.touch()
        store.save(project)
        return {"status": "failed", "error": e.message}

    if project.status == ProjectStatus.ERROR:
        logger.warning("generation_job_failed", project_id=project_id, errors=project.progress.errors)
        return {"status": "failed", "errors": project.progress.errors}

    logger.info("generation_job_complete", project_id=project_id, total_duration=project.totalDuration)
    return {"status": "completed", "project_id": project_id}
