"""
DynamoDB configuration and table bootstrap using PynamoDB.
"""

from pynamodb.models import Model
from config import settings
import structlog

logger = structlog.get_logger()


class BaseDynamoModel(Model):
    """
    Base model for the studio's DynamoDB models.

    Credentials are only set by child models when USE_LOCAL_DYNAMODB is on;
    otherwise PynamoDB falls back to the boto credential chain.
    """

    class Meta:
        region = settings.DYNAMODB_REGION


def _is_timeout(error: Exception) -> bool:
    error_str = str(error).lower()
    return "timeout" in error_str or "timed out" in error_str


def _is_already_exists(error: Exception) -> bool:
    error_str = str(error).lower()
    return "already exists" in error_str or "resourceinuseexception" in error_str


def init_dynamodb_tables() -> None:
    """
    Create the project table if it does not exist.

    Idempotent; a concurrent create that loses the race is treated as success.
    """
    from video_models import VideoProjectItem
    from pynamodb.exceptions import TableError

    table_name = settings.DYNAMODB_TABLE_NAME
    try:
        try:
            table_exists = VideoProjectItem.exists()
        except TableError as e:
            if not _is_timeout(e):
                raise
            logger.warning(
                "dynamodb_exists_check_timeout",
                message="Table existence check timed out, attempting to create table anyway",
                error=str(e),
            )
            table_exists = False

        if table_exists:
            logger.info("dynamodb_table_exists", table_name=table_name)
            return

        logger.info("dynamodb_table_creating", table_name=table_name)
        try:
            VideoProjectItem.create_table(
                read_capacity_units=5,
                write_capacity_units=5,
                wait=True,
            )
            logger.info("dynamodb_table_created", table_name=table_name)
        except TableError as e:
            if not _is_already_exists(e):
                raise
            logger.info("dynamodb_table_exists", table_name=table_name)
    except Exception as e:
        logger.error("dynamodb_table_init_error", error=str(e), exc_info=True)
        raise
