"""
Configuration management for the Video Studio API
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings:
    """Application settings"""

    # Redis
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_MAX_CONNECTIONS: int = int(os.getenv("REDIS_MAX_CONNECTIONS", "50"))
    REDIS_SOCKET_TIMEOUT: int = int(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))
    REDIS_SOCKET_CONNECT_TIMEOUT: int = int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5"))
    REDIS_RETRY_ON_TIMEOUT: bool = os.getenv("REDIS_RETRY_ON_TIMEOUT", "true").lower() == "true"
    REDIS_HEALTH_CHECK_INTERVAL: int = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000")

    # Application
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Where clients are sent after a 401
    LOGIN_URL: str = os.getenv("LOGIN_URL", "/api/login")

    # Storage backends
    # Options: "dynamodb" or "memory"
    PROJECT_STORE_BACKEND: str = os.getenv("PROJECT_STORE_BACKEND", "dynamodb")
    # Options: "redis" or "memory"
    JOB_STORE_BACKEND: str = os.getenv("JOB_STORE_BACKEND", "redis")

    # AWS credentials (DynamoDB)
    AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
    AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")

    # DynamoDB Configuration
    DYNAMODB_ENDPOINT: str = os.getenv("DYNAMODB_ENDPOINT", "http://localhost:8001")
    DYNAMODB_REGION: str = os.getenv("DYNAMODB_REGION", "us-east-1")
    DYNAMODB_TABLE_NAME: str = os.getenv("DYNAMODB_TABLE_NAME", "VideoProjects")
    # Use local DynamoDB for development
    USE_LOCAL_DYNAMODB: bool = os.getenv("USE_LOCAL_DYNAMODB", "true").lower() == "true"

    @property
    def dynamodb_access_key_id(self) -> str:
        """Get DynamoDB access key, using fake credentials for local dev if not set."""
        if self.USE_LOCAL_DYNAMODB:
            return self.AWS_ACCESS_KEY_ID if self.AWS_ACCESS_KEY_ID else "fakeAccessKey"
        return self.AWS_ACCESS_KEY_ID

    @property
    def dynamodb_secret_access_key(self) -> str:
        """Get DynamoDB secret key, using fake credentials for local dev if not set."""
        if self.USE_LOCAL_DYNAMODB:
            return self.AWS_SECRET_ACCESS_KEY if self.AWS_SECRET_ACCESS_KEY else "fakeSecretKey"
        return self.AWS_SECRET_ACCESS_KEY

    def validate_dynamodb_config(self) -> None:
        """
        Validate DynamoDB configuration at startup.
        Raises ValueError if production mode lacks required credentials.
        """
        if self.PROJECT_STORE_BACKEND != "dynamodb":
            return
        if not self.USE_LOCAL_DYNAMODB:
            if not self.AWS_ACCESS_KEY_ID:
                raise ValueError("AWS_ACCESS_KEY_ID is required when USE_LOCAL_DYNAMODB=false")
            if not self.AWS_SECRET_ACCESS_KEY:
                raise ValueError("AWS_SECRET_ACCESS_KEY is required when USE_LOCAL_DYNAMODB=false")

    # Video regeneration jobs
    VIDEO_JOB_TTL: int = int(os.getenv("VIDEO_JOB_TTL", "86400"))  # 24 hours
    VIDEO_JOB_DEFAULT_PROVIDER: str = os.getenv("VIDEO_JOB_DEFAULT_PROVIDER", "mock-i2v")

    # Undo/redo
    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "50"))

    # Quality gate thresholds
    QA_MINIMUM_SCENE_SCORE: int = int(os.getenv("QA_MINIMUM_SCENE_SCORE", "70"))
    QA_MINIMUM_PROJECT_SCORE: int = int(os.getenv("QA_MINIMUM_PROJECT_SCORE", "75"))
    QA_MAXIMUM_CRITICAL_ISSUES: int = int(os.getenv("QA_MAXIMUM_CRITICAL_ISSUES", "0"))
    QA_MAXIMUM_MAJOR_ISSUES: int = int(os.getenv("QA_MAXIMUM_MAJOR_ISSUES", "3"))
    QA_REQUIRE_USER_APPROVAL: bool = os.getenv("QA_REQUIRE_USER_APPROVAL", "true").lower() == "true"
    QA_AUTO_APPROVE_SCORE: int = int(os.getenv("QA_AUTO_APPROVE_SCORE", "85"))

    # Render tracking (in seconds)
    RENDER_TIMEOUT_SECONDS: int = int(os.getenv("RENDER_TIMEOUT_SECONDS", "900"))  # 15 minutes
    RENDER_STALL_SECONDS: int = int(os.getenv("RENDER_STALL_SECONDS", "180"))  # 3 minutes
    RENDER_STATUS_FAILURE_SECONDS: int = int(os.getenv("RENDER_STATUS_FAILURE_SECONDS", "300"))  # 5 minutes
    RENDER_RETRY_AFTER_SECONDS: int = int(os.getenv("RENDER_RETRY_AFTER_SECONDS", "10"))
    RENDER_BUCKET_NAME: str = os.getenv("RENDER_BUCKET_NAME", "studio-renders")

    # Mock providers
    # Progress added to a mock render on every status check (0-1)
    MOCK_RENDER_PROGRESS_STEP: float = float(os.getenv("MOCK_RENDER_PROGRESS_STEP", "0.25"))
    MOCK_ASSET_BASE_URL: str = os.getenv("MOCK_ASSET_BASE_URL", "https://assets.studio.local")
    # Comma-separated provider kinds that should fail, e.g. "image,video"
    MOCK_FAILING_PROVIDERS: Optional[str] = os.getenv("MOCK_FAILING_PROVIDERS", None)

    @property
    def cors_origins_list(self) -> list:
        """Parse CORS origins into a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def failing_providers(self) -> set:
        """Parse mock failure injection list"""
        if not self.MOCK_FAILING_PROVIDERS:
            return set()
        return {kind.strip() for kind in self.MOCK_FAILING_PROVIDERS.split(",") if kind.strip()}


# Global settings instance
settings = Settings()
