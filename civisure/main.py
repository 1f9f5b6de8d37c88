"""
CiviSure - Main Application Entry Point

Crime reporting, SOS alerts and legal assistance for citizens, with an
admin console for moderation and analytics.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from civisure.config import settings
from civisure.database import init_db, close_db, async_session
from civisure.auth import ensure_default_admin, purge_expired_sessions
from civisure.errors import register_exception_handlers
from civisure.rate_limit import RateLimitMiddleware
from civisure.routes.auth_routes import router as auth_router
from civisure.routes.report_routes import router as report_router
from civisure.routes.sos_routes import router as sos_router
from civisure.routes.lawyer_routes import router as lawyer_router
from civisure.routes.chatbot_routes import router as chatbot_router
from civisure.routes.admin_routes import router as admin_router
from civisure.routes.realtime_routes import router as realtime_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# STARTUP & SHUTDOWN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database on startup; release the engine on shutdown."""
    await init_db()
    async with async_session() as db:
        await ensure_default_admin(db)
        await purge_expired_sessions(db)
        await db.commit()

    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} listening on {settings.HOST}:{settings.PORT}")
    try:
        yield
    finally:
        await close_db()
        logger.info(f"{settings.APP_NAME} is shutting down")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Evidence files attached to crime reports
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Add rate limiting middleware
app.add_middleware(RateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/auth")
app.include_router(report_router, prefix="/api/reports")
app.include_router(sos_router, prefix="/api/sos")
app.include_router(lawyer_router, prefix="/api/lawyers")
app.include_router(chatbot_router, prefix="/api/chatbot")
app.include_router(admin_router, prefix="/api/admin")
app.include_router(realtime_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


# =============================================================================
# RUN (for development)
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "civisure.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
