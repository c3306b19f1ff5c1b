"""
Quality gate: decides whether a project's scenes are good enough to render.

The report is derived from each scene's stored analysis and approval flags;
nothing here is persisted.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

import structlog

from config import settings
from video_schemas import (
    AnalysisResult,
    ProjectQualityReport,
    QualityIssue,
    QualityThresholds,
    Scene,
    SceneQualityIssue,
    SceneQualityStatus,
    VideoProject,
)

logger = structlog.get_logger()

UNANALYZED_ISSUE = "Scene has not been analyzed yet"
USER_REVIEW_MARKER = "user review"
UNANALYZED_MARKER = "not yet analyzed"


def default_thresholds() -> QualityThresholds:
    return QualityThresholds(
        minimumSceneScore=settings.QA_MINIMUM_SCENE_SCORE,
        minimumProjectScore=settings.QA_MINIMUM_PROJECT_SCORE,
        maximumCriticalIssues=settings.QA_MAXIMUM_CRITICAL_ISSUES,
        maximumMajorIssues=settings.QA_MAXIMUM_MAJOR_ISSUES,
        requireUserApproval=settings.QA_REQUIRE_USER_APPROVAL,
        autoApproveScore=settings.QA_AUTO_APPROVE_SCORE,
    )


def placeholder_analysis(scene_index: int) -> AnalysisResult:
    """Stand-in for a scene that has never been analyzed."""
    return AnalysisResult(
        sceneIndex=scene_index,
        overallScore=0,
        issues=[QualityIssue(
            category="technical",
            severity="critical",
            description=UNANALYZED_ISSUE,
            suggestion="Run quality analysis on all scenes",
        )],
        recommendation="regenerate",
        analysisModel="pending",
    )


def classify_scene(
    scene: Scene,
    scene_index: int,
    thresholds: QualityThresholds,
) -> Tuple[SceneQualityStatus, List[QualityIssue]]:
    """
    Status rules, first match wins:
        userApproved                             -> approved
        score >= autoApproveScore                -> approved (auto)
        recommendation regenerate / score < min  -> rejected
        otherwise                                -> needs_review
    """
    analysis = scene.analysisResult or placeholder_analysis(scene_index)
    issues = list(analysis.issues)
    if scene.rejectionReason and not scene.userApproved:
        issues.append(QualityIssue(
            category="content",
            severity="major",
            description=f"User rejected: {scene.rejectionReason}",
        ))

    score = analysis.overallScore
    auto_approved = False
    if scene.userApproved:
        status = "approved"
    elif score >= thresholds.autoApproveScore:
        status = "approved"
        auto_approved = True
    elif analysis.recommendation == "regenerate" or score < thresholds.minimumSceneScore:
        status = "rejected"
    else:
        status = "needs_review"

    scene_status = SceneQualityStatus(
        sceneIndex=scene_index,
        sceneId=scene.id,
        score=score,
        status=status,
        issues=[SceneQualityIssue(severity=i.severity, description=i.description) for i in issues],
        userApproved=scene.userApproved,
        autoApproved=auto_approved,
        regenerationCount=scene.regenerationCount,
    )
    return scene_status, issues


def generate_report(
    project: VideoProject,
    thresholds: Optional[QualityThresholds] = None,
) -> ProjectQualityReport:
    thresholds = thresholds or default_thresholds()

    statuses: List[SceneQualityStatus] = []
    critical = major = minor = 0
    for index, scene in enumerate(project.scenes):
        scene_status, issues = classify_scene(scene, index, thresholds)
        statuses.append(scene_status)
        for issue in issues:
            if issue.severity == "critical":
                critical += 1
            elif issue.severity == "major":
                major += 1
            else:
                minor += 1

    def count(status: str) -> int:
        return sum(1 for s in statuses if s.status == status)

    approved = count("approved")
    needs_review = count("needs_review")
    rejected = count("rejected")
    pending = count("pending")
    overall = round(sum(s.score for s in statuses) / len(statuses)) if statuses else 0

    reasons: List[str] = []
    if overall < thresholds.minimumProjectScore:
        reasons.append(f"Overall score {overall} below minimum {thresholds.minimumProjectScore}")
    if critical > thresholds.maximumCriticalIssues:
        reasons.append(f"{critical} critical issues (max {thresholds.maximumCriticalIssues})")
    if major > thresholds.maximumMajorIssues:
        reasons.append(f"{major} major issues (max {thresholds.maximumMajorIssues})")
    if rejected > 0:
        reasons.append(f"{rejected} rejected scenes need regeneration")
    if thresholds.requireUserApproval and needs_review > 0:
        reasons.append(f"{needs_review} scenes need {USER_REVIEW_MARKER}")

    passes = not reasons
    can_render = passes or (len(reasons) == 1 and USER_REVIEW_MARKER in reasons[0])

    unanalyzed = sum(1 for scene in project.scenes if scene.analysisResult is None)
    if unanalyzed > 0:
        reasons.append(f"{unanalyzed} scenes {UNANALYZED_MARKER}")
        passes = False
        can_render = False

    analyzed_times = [s.analysisResult.analyzedAt for s in project.scenes if s.analysisResult]
    report = ProjectQualityReport(
        projectId=project.id,
        overallScore=overall,
        sceneStatuses=statuses,
        approvedCount=approved,
        needsReviewCount=needs_review,
        rejectedCount=rejected,
        pendingCount=pending,
        criticalIssueCount=critical,
        majorIssueCount=major,
        minorIssueCount=minor,
        passesThreshold=passes,
        canRender=can_render,
        blockingReasons=reasons,
        lastAnalyzedAt=max(analyzed_times) if analyzed_times else datetime.now(timezone.utc),
    )
    logger.info(
        "quality_report_generated",
        project_id=project.id,
        score=overall,
        approved=approved,
        review=needs_review,
        rejected=rejected,
        can_render=can_render,
    )
    return report


def can_proceed_to_render(report: ProjectQualityReport, force: bool = False) -> Tuple[bool, str]:
    """
    `force` overrides score, issue-count and review blocks. Rejected or
    unanalyzed scenes still block.
    """
    if report.passesThreshold:
        return True, "All quality checks passed"
    if report.canRender and report.needsReviewCount > 0:
        return True, f"{report.needsReviewCount} scenes pending review - user can override"
    if force and report.rejectedCount == 0 and report.sceneStatuses and not any(
        UNANALYZED_MARKER in reason for reason in report.blockingReasons
    ):
        return True, "Render forced past quality warnings"
    return False, "; ".join(report.blockingReasons)


def approve_scene(scene: Scene) -> None:
    scene.userApproved = True
    scene.rejectionReason = None


def reject_scene(scene: Scene, reason: Optional[str]) -> None:
    scene.userApproved = False
    scene.rejectionReason = (reason or "").strip() or "Rejected by user"


def approve_all(project: VideoProject) -> int:
    """
    Approve every scene whose analysis recommends review and that is not yet
    approved. Returns the number of scenes approved.
    """
    approved = 0
    for scene in project.scenes:
        analysis = scene.analysisResult
        if analysis is None or scene.userApproved:
            continue
        if analysis.recommendation == "needs_review":
            approve_scene(scene)
            approved += 1
    if approved:
        project.touch()
    return approved


def clear_analysis(scene: Scene) -> None:
    scene.analysisResult = None
    scene.qualityScore = None
    scene.userApproved = False
    scene.rejectionReason = None
