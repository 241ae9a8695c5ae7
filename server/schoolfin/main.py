from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from schoolfin.api.v1.endpoints import auth, students, fees, dashboard
from schoolfin.api.v1.endpoints import settings as school_settings
from schoolfin.core.config import Settings, get_settings
from schoolfin.core.errors import register_exception_handlers
from schoolfin.db.supabase import get_supabase_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.PROJECT_NAME}...")
    try:
        get_supabase_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        logger.info("✓ Supabase connection established")
    except Exception as e:
        logger.error(f"✗ Supabase connection failed: {e}")

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one settings value"""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Student records and fee category management",
        version=settings.VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc"
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT
        }

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": settings.PROJECT_NAME,
            "docs": "/api/docs",
            "version": settings.VERSION
        }

    prefix = settings.API_V1_PREFIX
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(students.router, prefix=f"{prefix}/students", tags=["Students"])
    app.include_router(fees.router, prefix=f"{prefix}/fees", tags=["Fees"])
    app.include_router(school_settings.router, prefix=f"{prefix}/settings", tags=["Settings"])
    app.include_router(dashboard.router, prefix=f"{prefix}/dashboard", tags=["Dashboard"])

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "schoolfin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().ENVIRONMENT == "development"
    )
