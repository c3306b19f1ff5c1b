"""
FastAPI Backend for the Video Studio
"""

import logging
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=False,
)

logger = structlog.get_logger()

# Import settings
from config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("application_startup", message="FastAPI application starting up")

    # Validate configuration
    try:
        settings.validate_dynamodb_config()
        logger.info("config_validated", message="Configuration validated successfully")
    except ValueError as e:
        logger.error("config_validation_failed", error=str(e))
        raise

    logger.info(
        "storage_backends",
        project_store=settings.PROJECT_STORE_BACKEND,
        job_store=settings.JOB_STORE_BACKEND,
    )

    # Initialize DynamoDB tables
    if settings.PROJECT_STORE_BACKEND == "dynamodb":
        try:
            from dynamodb_config import init_dynamodb_tables
            init_dynamodb_tables()
            logger.info("dynamodb_tables_created", message="DynamoDB tables initialized successfully")
        except Exception as e:
            logger.error("dynamodb_init_error", error=str(e))

    yield

    if settings.JOB_STORE_BACKEND == "redis":
        from redis_client import close_redis_client
        close_redis_client()

    logger.info("application_shutdown", message="FastAPI application shutting down")


# Initialize FastAPI app
app = FastAPI(
    title="Video Studio API",
    description="Backend API for AI marketing video projects",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.DEBUG,
    swagger_ui_parameters={
        "persistAuthorization": True,
    }
)


# Configure OpenAPI schema to include API key authentication
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    from fastapi.openapi.utils import get_openapi

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "ApiKeyAuth": {
            "type": "apiKey",
            "in": "header",
            "name": "X-API-Key",
            "description": "API key for authentication. Use the value from your .env file (API_KEY)"
        }
    }
    # Apply security globally to all endpoints
    openapi_schema["security"] = [{"ApiKeyAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API Authentication middleware - applies to all /api/ routes
@app.middleware("http")
async def api_authentication_middleware(request: Request, call_next):
    """Authenticate all /api/ routes with API key"""
    if not request.url.path.startswith("/api/"):
        return await call_next(request)

    # Skip authentication for CORS preflight requests
    if request.method == "OPTIONS":
        return await call_next(request)

    import auth

    if not auth.get_api_key_from_env():
        return await call_next(request)

    api_key = request.headers.get(auth.API_KEY_HEADER) or request.query_params.get(auth.API_KEY_QUERY)
    if not api_key:
        return auth.unauthorized_response(
            "API key missing. Provide X-API-Key header or ?api_key=YOUR_KEY",
            "Authentication required for /api/ endpoints",
        )
    if not auth.check_api_key(api_key):
        return auth.unauthorized_response("Invalid API key", "The provided API key is not valid")

    return await call_next(request)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    start_time = time.time()

    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None
    )

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=f"{process_time:.3f}s"
        )

        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            error=str(e),
            process_time=f"{process_time:.3f}s"
        )
        raise


# Global error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
            "details": str(exc) if app.debug else None
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint

    Returns:
        dict: Health status of the API
    """
    return {
        "status": "healthy",
        "service": "video-studio",
        "version": "1.0.0"
    }


# Include routers
from routers import quality, render, scene_editing, video_jobs, video_projects

app.include_router(video_projects.router)
app.include_router(scene_editing.router)
app.include_router(video_jobs.router)
app.include_router(quality.router)
app.include_router(render.router)
logger.info("router_loaded", router="video")


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Video Studio API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "projects": "/api/video/projects",
            "create_product_video": "/api/video/projects/product",
            "create_script_video": "/api/video/projects/script",
            "generate_assets": "/api/video/projects/{id}/generate-assets",
            "undo": "/api/video/projects/{id}/undo",
            "redo": "/api/video/projects/{id}/redo",
            "quality_report": "/api/video/projects/{id}/quality-report",
            "render": "/api/video/projects/{id}/render",
            "render_status": "/api/video/projects/{id}/render-status",
            "service_status": "/api/video/service-status"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
        log_level="info"
    )
