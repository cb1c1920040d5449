from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from app.config import settings
from app.database import init_db
from app.core.exceptions import (
    AccessDeniedError,
    FollowRequestNotFoundError,
    RelationshipError,
    RelationshipExistsError,
    UserNotFoundError,
)
from app.core.logging import get_logger, setup_logging
from app.core.redis import RedisClient, get_redis, redis_client
from app.api import api_router

logger = get_logger(__name__)

ERROR_STATUS = {
    UserNotFoundError: status.HTTP_404_NOT_FOUND,
    FollowRequestNotFoundError: status.HTTP_404_NOT_FOUND,
    RelationshipExistsError: status.HTTP_409_CONFLICT,
    AccessDeniedError: status.HTTP_403_FORBIDDEN,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info("Starting up...")
    await redis_client.connect()
    await init_db()
    logger.info("Database and Redis initialized")

    yield

    logger.info("Shutting down...")
    await redis_client.disconnect()


app = FastAPI(
    title=settings.app_name,
    description="Relationship graph and privacy guardian built with FastAPI, PostgreSQL, and Redis",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RelationshipError)
async def relationship_error_handler(request: Request, exc: RelationshipError):
    """Render domain errors with their stable code."""
    return JSONResponse(
        status_code=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
        content={"detail": exc.message, "code": exc.code},
    )


# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check(redis: RedisClient = Depends(get_redis)):
    """Health check endpoint; reports 503 when Redis is unreachable."""
    try:
        redis_ok = await redis.ping()
    except RedisError:
        logger.exception("Redis ping failed")
        redis_ok = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if redis_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if redis_ok else "unhealthy",
            "redis": "ok" if redis_ok else "unreachable",
            "environment": settings.environment,
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
