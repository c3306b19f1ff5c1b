#!/usr/bin/env python3
"""
Quick script to inspect video projects in DynamoDB.

Usage:
    python scripts/check_project.py <project_id>    # Check specific project
    python scripts/check_project.py --list          # List all projects
    python scripts/check_project.py --recent 5      # Show 5 most recent projects
    python scripts/check_project.py --stuck         # Projects stuck generating/rendering
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dynamodb_config import init_dynamodb_tables
from studio.quality_gate import generate_report
from video_models import VideoProjectItem, project_pk
from video_schemas import ProjectStatus

STATUSES = [status.value for status in ProjectStatus]


def check_project(project_id: str) -> bool:
    """Check if a specific project exists and summarize it."""
    try:
        item = VideoProjectItem.get(project_pk(project_id), "METADATA")
    except VideoProjectItem.DoesNotExist:
        print(f"❌ Project not found: {project_id}")
        return False

    project = item.to_project()
    history = item.to_history()
    print(f"✅ Project found: {project_id}")
    print(f"   Title: {project.title} ({project.type})")
    print(f"   Owner: {project.ownerId}")
    print(f"   Status: {project.status.value}  ({project.progress.overallPercent}%)")
    print(f"   Current step: {project.progress.currentStep}")
    print(f"   Scenes: {len(project.scenes)}  ({project.totalDuration:.1f}s)")
    print(f"   Undo/redo: {len(history.undoStack)}/{len(history.redoStack)}")
    if project.progress.errors:
        print(f"   Errors: {'; '.join(project.progress.errors)}")
    if project.progress.serviceFailures:
        print(f"   Service failures: {len(project.progress.serviceFailures)}")
        for failure in project.progress.serviceFailures[-3:]:
            fallback = f" -> {failure.fallbackUsed}" if failure.fallbackUsed else ""
            print(f"     {failure.timestamp.isoformat()} {failure.service}{fallback}: {failure.error}")
    if project.scenes:
        report = generate_report(project)
        print(f"   Quality: score {report.overallScore}, canRender={report.canRender}")
        for reason in report.blockingReasons:
            print(f"     - {reason}")
    if project.outputUrl:
        print(f"   Output: {project.outputUrl}")
    return True


def _items_by_status(statuses):
    items = []
    for status in statuses:
        items.extend(VideoProjectItem.status_index.query(status))
    return [item for item in items if item.entityType == "project"]


def _print_items(items):
    for item in items:
        summary = item.to_dict()
        print(f"  {summary['projectId']}")
        print(f"    Title: {summary['title']}")
        print(f"    Status: {summary['status']}")
        print(f"    Scenes: {summary['sceneCount']}")
        print(f"    Created: {summary['createdAt']}")
        print()


def list_all_projects():
    """List all projects in the database."""
    items = _items_by_status(STATUSES)
    print(f"\n📊 Total projects: {len(items)}\n")
    _print_items(items)


def show_recent(count: int = 10):
    """Show most recent projects."""
    items = _items_by_status(STATUSES)
    items.sort(key=lambda x: x.createdAt, reverse=True)
    print(f"\n📊 Most recent {min(count, len(items))} projects:\n")
    _print_items(items[:count])


def show_stuck():
    """Projects that may need POST /reset-status."""
    items = _items_by_status([ProjectStatus.GENERATING.value, ProjectStatus.RENDERING.value])
    print(f"\n⚠️  Projects generating or rendering: {len(items)}\n")
    _print_items(items)


def main():
    parser = argparse.ArgumentParser(description="Check DynamoDB video projects")
    parser.add_argument("project_id", nargs="?", help="Project ID to check")
    parser.add_argument("--list", action="store_true", help="List all projects")
    parser.add_argument("--recent", type=int, metavar="N", help="Show N most recent projects")
    parser.add_argument("--stuck", action="store_true", help="Show projects stuck generating or rendering")
    args = parser.parse_args()

    # Initialize tables (idempotent)
    try:
        init_dynamodb_tables()
    except Exception as e:
        print(f"Warning: Could not initialize tables: {e}")

    if args.list:
        list_all_projects()
    elif args.recent:
        show_recent(args.recent)
    elif args.stuck:
        show_stuck()
    elif args.project_id:
        check_project(args.project_id)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
