"""
PynamoDB models for video projects.

Single-table design:
- Partition Key: PROJECT#<projectId>
- Sort Key: METADATA

The full VideoProject aggregate is stored as a JSON document next to a few
top-level attributes used for lookups (owner, status, timestamps). Undo/redo
stacks live in their own JSON attribute so they never leak into API payloads.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pynamodb.attributes import (
    JSONAttribute,
    NumberAttribute,
    UnicodeAttribute,
    UTCDateTimeAttribute,
)
from pynamodb.indexes import AllProjection, GlobalSecondaryIndex
import structlog

from config import settings
from dynamodb_config import BaseDynamoModel
from video_schemas import ProjectHistory, VideoProject

logger = structlog.get_logger()


def project_pk(project_id: str) -> str:
    return f"PROJECT#{project_id}"


class StatusIndex(GlobalSecondaryIndex):
    """
    Global Secondary Index for querying projects by status.
    """

    class Meta:
        index_name = "status-created-index"
        read_capacity_units = 5
        write_capacity_units = 5
        projection = AllProjection()

    GSI1PK = UnicodeAttribute(hash_key=True)  # status
    GSI1SK = UnicodeAttribute(range_key=True)  # createdAt


class VideoProjectItem(BaseDynamoModel):
    """
    DynamoDB item holding one video project and its edit history.
    """

    class Meta:
        table_name = settings.DYNAMODB_TABLE_NAME
        region = settings.DYNAMODB_REGION
        # DynamoDB Local requires explicit (fake) credentials
        if settings.USE_LOCAL_DYNAMODB:
            host = settings.DYNAMODB_ENDPOINT
            aws_access_key_id = settings.dynamodb_access_key_id
            aws_secret_access_key = settings.dynamodb_secret_access_key

    PK = UnicodeAttribute(hash_key=True)  # PROJECT#<id>
    SK = UnicodeAttribute(range_key=True)  # METADATA

    entityType = UnicodeAttribute(default="project")
    projectId = UnicodeAttribute()
    ownerId = UnicodeAttribute()
    projectType = UnicodeAttribute()
    title = UnicodeAttribute()
    status = UnicodeAttribute()
    sceneCount = NumberAttribute(default=0)
    createdAt = UTCDateTimeAttribute()
    updatedAt = UTCDateTimeAttribute()

    GSI1PK = UnicodeAttribute(null=True)
    GSI1SK = UnicodeAttribute(null=True)
    status_index = StatusIndex()

    document = JSONAttribute()
    history = JSONAttribute(null=True)

    def apply_project(self, project: VideoProject) -> None:
        """
        Copy the aggregate onto this item, keeping the GSI in sync with status.
        """
        self.projectId = project.id
        self.ownerId = project.ownerId
        self.projectType = project.type
        self.title = project.title
        self.status = project.status.value
        self.sceneCount = len(project.scenes)
        self.createdAt = project.createdAt
        self.updatedAt = project.updatedAt or datetime.now(timezone.utc)
        self.GSI1PK = project.status.value
        self.GSI1SK = project.createdAt.isoformat()
        self.document = project.model_dump(mode="json")

    def to_project(self) -> VideoProject:
        return VideoProject.model_validate(self.document)

    def to_history(self) -> ProjectHistory:
        if not self.history:
            return ProjectHistory()
        return ProjectHistory.model_validate(self.history)

    def to_dict(self) -> Dict[str, Any]:
        """
        Summary used by maintenance scripts.
        """
        return {
            "projectId": self.projectId,
            "ownerId": self.ownerId,
            "type": self.projectType,
            "title": self.title,
            "status": self.status,
            "sceneCount": self.sceneCount,
            "createdAt": self.createdAt.isoformat() if self.createdAt else None,
            "updatedAt": self.updatedAt.isoformat() if self.updatedAt else None,
        }


def create_project_item(project: VideoProject, history: Optional[ProjectHistory] = None) -> VideoProjectItem:
    """
    Build a (not yet saved) item for a project.
    """
    item = VideoProjectItem()
    item.PK = project_pk(project.id)
    item.SK = "METADATA"
    item.entityType = "project"
    item.apply_project(project)
    item.history = (history or ProjectHistory()).model_dump(mode="json")
    return item
