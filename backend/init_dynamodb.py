"""
Initialize DynamoDB tables for local development.

Usage:
    python init_dynamodb.py                      # Create tables only
    python init_dynamodb.py --seed               # Create tables and seed a sample project
    python init_dynamodb.py --seed --owner alice # Seed for a specific X-User-Id
"""

import argparse

import structlog

from dynamodb_config import init_dynamodb_tables
from pipeline.script_parser import build_product_scenes
from services.project_store import DynamoProjectStore
from studio.project_factory import build_product_project
from video_schemas import ProductVideoRequest

logger = structlog.get_logger()


def seed_test_data(owner_id: str = "anonymous") -> str:
    """
    Seed the table with a product project whose script is already written.

    Returns:
        The new project id
    """
    logger.info("seed_test_data_start", owner_id=owner_id)

    request = ProductVideoRequest(
        productName="EcoWater Bottle",
        productDescription="A sustainable, insulated water bottle made from recycled steel",
        targetAudience="Commuters and hikers",
        benefits=["Keeps drinks cold for 24 hours", "Made from 90% recycled steel", "Lifetime warranty"],
        duration=30,
        platform="instagram",
        style="energetic",
        callToAction="Order yours today",
    )
    drafts = build_product_scenes(
        product_name=request.productName,
        product_description=request.productDescription,
        benefits=request.benefits,
        call_to_action=request.callToAction,
        duration=request.duration,
        style=request.style,
    )
    project = build_product_project(request, owner_id, drafts)

    try:
        DynamoProjectStore().save(project)
    except Exception as e:
        logger.error("seed_project_error", error=str(e), exc_info=True)
        raise

    logger.info("seed_test_data_complete", project_id=project.id, scene_count=len(project.scenes))
    print(f"\nTest project created: {project.id}")
    print(f"Scenes created: {len(project.scenes)}")
    print(f"\nTest the API:")
    print(f"  GET http://localhost:8000/api/video/projects/{project.id}  (X-User-Id: {owner_id})")
    return project.id


def main():
    """
    Main entry point for database initialization.
    """
    parser = argparse.ArgumentParser(description="Initialize DynamoDB tables")
    parser.add_argument("--seed", action="store_true", help="Seed database with a sample project")
    parser.add_argument("--owner", default="anonymous", help="Owner id for the seeded project")
    args = parser.parse_args()

    logger.info("dynamodb_init_start")

    try:
        init_dynamodb_tables()
        logger.info("dynamodb_init_complete")
        print("DynamoDB tables initialized successfully!")
    except Exception as e:
        logger.error("dynamodb_init_failed", error=str(e), exc_info=True)
        print(f"Failed to initialize DynamoDB tables: {e}")
        return

    if args.seed:
        seed_test_data(args.owner)


if __name__ == "__main__":
    main()
