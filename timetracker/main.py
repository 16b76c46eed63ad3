"""
TimeTracker Attendance Service - Main Application Entry Point.

This service reacts to attendance activity recorded by the clock-in flow:
- Device conflict detection for newly created sessions
- Clock-in, late arrival and clock-out push reminders
- End-of-day attendance summaries
- Admin dashboard reads with Redis caching
- Kafka event publishing for audit and notifications
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from timetracker.api.routes.dashboard import router as dashboard_router
from timetracker.api.routes.notifications import router as notifications_router
from timetracker.api.routes.triggers import router as triggers_router
from timetracker.core.cache import RedisClient
from timetracker.core.config import settings
from timetracker.core.database import create_db_and_tables
from timetracker.core.handlers import register_attendance_handlers
from timetracker.core.kafka import KafkaConsumer, KafkaProducer
from timetracker.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting TimeTracker Attendance Service...")

    logger.info("Creating database and tables...")
    create_db_and_tables()
    logger.info("Database and tables created successfully")

    if RedisClient.enabled:
        logger.info("Initializing Redis client...")
        if RedisClient.ping():
            logger.info("Redis client connected successfully")
        else:
            logger.warning("Redis connection failed, caching will be disabled")
            RedisClient.enabled = False

    logger.info("Initializing Kafka producer...")
    await KafkaProducer.start()

    # Register Kafka event handlers
    logger.info("Registering attendance event handlers...")
    register_attendance_handlers()

    # Start Kafka consumer if there are handlers registered
    logger.info("Starting Kafka consumer...")
    await KafkaConsumer.start()

    logger.info("TimeTracker Attendance Service startup complete")

    yield

    # Shutdown
    logger.info("TimeTracker Attendance Service shutting down...")

    logger.info("Stopping Kafka consumer...")
    await KafkaConsumer.stop()
    logger.info("Kafka consumer stopped")

    logger.info("Stopping Kafka producer...")
    await KafkaProducer.stop()
    logger.info("Kafka producer stopped")

    logger.info("Closing Redis client...")
    RedisClient.close()
    logger.info("Redis client closed")

    logger.info("TimeTracker Attendance Service shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="TimeTracker Attendance Service - device conflict checks, push reminders and daily attendance summaries",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Include routers
app.include_router(dashboard_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(triggers_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint for container orchestration and monitoring.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/ready", tags=["health"])
async def readiness_check():
    """
    Readiness check endpoint for Kubernetes.
    Verifies that the service is ready to accept traffic.
    """
    redis_ready = RedisClient.enabled and RedisClient.ping()

    # Kafka is optional; only report it when it is switched on
    kafka_ready = KafkaProducer._started or not settings.KAFKA_ENABLED

    all_ready = redis_ready and kafka_ready

    return {
        "status": "ready" if all_ready else "not_ready",
        "checks": {
            "redis": "ok" if redis_ready else "error",
            "kafka_producer": "ok" if kafka_ready else "error",
        },
    }


@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint with service information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }
