import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from tracking_app.config import settings
from tracking_app.database.connection import Database
from tracking_app.exceptions import InternalError
from tracking_app.api.v1 import analytics, links, redirect, track

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database handle once per process and close it on shutdown"""
    database = Database(settings.database_url, echo=False)
    database.create_tables()
    app.state.database = database
    try:
        yield
    finally:
        database.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Tracking links with visit analytics built with FastAPI",
    debug=settings.debug,
    lifespan=lifespan
)


@app.exception_handler(InternalError)
async def internal_error_handler(request: Request, exc: InternalError):
    """Storage failures are already logged; the client gets a generic body"""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(links.router, prefix="/api/v1")
app.include_router(track.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(redirect.router)
