"""
Production progress bookkeeping.

The seven generation steps share the first 85% of overallPercent; rendering
covers the remaining 15%.
"""

from typing import Optional

from video_schemas import (
    GENERATION_STEPS,
    ServiceFailure,
    StepState,
    VideoProject,
)

GENERATION_SHARE = 85
RENDER_SHARE = 15

_DONE_STATES = (StepState.COMPLETE, StepState.SKIPPED)


def compute_overall_percent(project: VideoProject) -> int:
    steps = project.progress.steps
    rendering = steps.get("rendering")
    if rendering is not None and rendering.status in (StepState.IN_PROGRESS, StepState.COMPLETE):
        return min(100, GENERATION_SHARE + round(RENDER_SHARE * rendering.progress / 100))

    total = 0
    for name in GENERATION_STEPS:
        step = steps.get(name)
        if step is None:
            continue
        total += 100 if step.status in _DONE_STATES else step.progress
    return round(GENERATION_SHARE * total / (100 * len(GENERATION_STEPS)))


def _refresh(project: VideoProject) -> None:
    project.progress.overallPercent = compute_overall_percent(project)
    project.touch()


def start_step(project: VideoProject, step: str, message: Optional[str] = None) -> None:
    status = project.progress.steps[step]
    status.status = StepState.IN_PROGRESS
    status.progress = 0
    status.message = message
    project.progress.currentStep = step
    _refresh(project)


def set_step_progress(project: VideoProject, step: str, percent: int, message: Optional[str] = None) -> None:
    status = project.progress.steps[step]
    status.progress = max(0, min(100, int(percent)))
    if message is not None:
        status.message = message
    _refresh(project)


def complete_step(project: VideoProject, step: str, message: Optional[str] = None) -> None:
    status = project.progress.steps[step]
    status.status = StepState.COMPLETE
    status.progress = 100
    status.message = message
    _refresh(project)


def skip_step(project: VideoProject, step: str, message: Optional[str] = None) -> None:
    status = project.progress.steps[step]
    status.status = StepState.SKIPPED
    status.progress = 0
    status.message = message
    _refresh(project)


def fail_step(project: VideoProject, step: str, error: str) -> None:
    status = project.progress.steps[step]
    status.status = StepState.ERROR
    status.message = error
    project.progress.errors.append(error)
    _refresh(project)


def update_render_progress(project: VideoProject, fraction: float, message: Optional[str] = None) -> None:
    """
    Record render progress (0-1): rendering step at round(100p),
    overall at 85 + round(15p).
    """
    fraction = max(0.0, min(1.0, fraction))
    status = project.progress.steps["rendering"]
    status.status = StepState.IN_PROGRESS
    status.progress = round(fraction * 100)
    if message is not None:
        status.message = message
    project.progress.currentStep = "rendering"
    project.progress.overallPercent = GENERATION_SHARE + round(RENDER_SHARE * fraction)
    project.touch()


def reset_render_progress(project: VideoProject) -> None:
    status = project.progress.steps["rendering"]
    status.status = StepState.PENDING
    status.progress = 0
    status.message = None
    project.progress.renderStartedAt = None
    project.progress.lastProgressValue = None
    project.progress.lastProgressUpdateAt = None


def record_service_failure(
    project: VideoProject,
    service: str,
    error: str,
    fallback_used: Optional[str] = None,
) -> ServiceFailure:
    """Append to the service failure log (never truncated)."""
    failure = ServiceFailure(service=service, error=error, fallbackUsed=fallback_used)
    project.progress.serviceFailures.append(failure)
    project.touch()
    return failure
