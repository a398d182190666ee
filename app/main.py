"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import database
from app.error_handlers import register_error_handlers
from app.logging_config import setup_logging
from app.routers import projects, records, stats, timers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    setup_logging(settings.log_level, settings.log_format)
    await database.connect()
    yield
    # Shutdown
    await database.disconnect()


app = FastAPI(
    title="Time Record Service API",
    description="Time record lifecycle, active timer and reporting statistics",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(records.router)
app.include_router(timers.router)
app.include_router(stats.router)
app.include_router(projects.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Time Record Service API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
