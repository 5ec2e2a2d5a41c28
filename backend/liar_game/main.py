from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from liar_game.config import settings
from liar_game.database import engine, init_db
from liar_game.routers import auth_router, hooks_router, rooms_router, admin_router
from liar_game.utils.logging_config import setup_logging, fastapi_logger
from liar_game.utils.rate_limit import limiter, close_rate_limiter
from liar_game.error_handlers import register_exception_handlers
from liar_game.middleware import RateLimitHeaderMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    # Setup logging first
    setup_logging()
    fastapi_logger.info(f"Starting {settings.APP_NAME}")
    await init_db()
    fastapi_logger.info("Database initialized")
    if settings.RATE_LIMIT_ENABLED:
        health = await limiter.health_check()
        if health["redis_connected"]:
            fastapi_logger.info("Rate limiter connected to Redis")
        else:
            fastapi_logger.warning("Redis not available, using in-memory fallback for rate limiting")
    yield
    # Shutdown
    fastapi_logger.info("Shutting down application")
    await close_rate_limiter()
    fastapi_logger.info("Rate limiter connections closed")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Liar game backend: kimlik, erisim kontrolu ve oda yasam dongusu",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate Limit Headers Middleware (must be added after CORS)
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitHeaderMiddleware)

# Global Exception Handlers
register_exception_handlers(app)

# API Routers
app.include_router(auth_router)
app.include_router(hooks_router)
app.include_router(rooms_router)
app.include_router(admin_router)


# Health Check
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "rate_limit": await limiter.health_check()
    }


@app.get("/ready")
async def readiness_check():
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        fastapi_logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "not_ready", "database": False})
    return {"status": "ready", "database": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("liar_game.main:app", host="0.0.0.0", port=8000, reload=True)
