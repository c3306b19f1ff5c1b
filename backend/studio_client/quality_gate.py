"""
Quality summary shown before rendering.

Counts come from each scene's stored analysis; whether rendering is allowed
is always the server's call (canRender and blockingReasons from the report).
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from studio_client.api import StudioClient
from video_schemas import ProjectQualityReport, VideoProject


class QualitySummary(BaseModel):
    total: int = 0
    approved: int = 0
    needsReview: int = 0
    regenerate: int = 0
    unanalyzed: int = 0
    userApproved: int = 0
    canRender: bool = False
    blockingReasons: List[str] = Field(default_factory=list)


def summarize(project: VideoProject, report: Optional[ProjectQualityReport] = None) -> QualitySummary:
    summary = QualitySummary(total=len(project.scenes))
    for scene in project.scenes:
        if scene.userApproved:
            summary.userApproved += 1
        analysis = scene.analysisResult
        if analysis is None:
            summary.unanalyzed += 1
        elif analysis.recommendation == "approved":
            summary.approved += 1
        elif analysis.recommendation == "needs_review":
            summary.needsReview += 1
        else:
            summary.regenerate += 1

    if report is not None:
        summary.canRender = report.canRender
        summary.blockingReasons = list(report.blockingReasons)
    return summary


async def load_summary(client: StudioClient, project_id: str) -> QualitySummary:
    """Fetch the server report and summarize the current local project."""
    response = await client.get_quality_report(project_id)
    project = client.state.project
    if project is None or project.id != project_id:
        project = (await client.load_project(project_id)).project
    return summarize(project, response.report)
