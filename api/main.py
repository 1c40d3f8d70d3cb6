"""
FastAPI Application - Signal Watcher API
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_engine, close_engine, run_migrations
from processor import CommandQueue
from repositories import KeyStore, WatchlistReader
from scheduler import build_scheduler
from utils.logger import init_logging
from .routes import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    init_logging("api")
    await asyncio.to_thread(run_migrations)
    await init_engine()

    store = KeyStore()
    commands = CommandQueue()
    scheduler = build_scheduler(store, commands)

    app.state.store = store
    app.state.commands = commands
    app.state.scheduler = scheduler
    app.state.registry = scheduler.pipeline.registry
    app.state.reader = WatchlistReader(store, scheduler.pipeline.signals)

    if settings.SCHEDULER_ENABLED:
        await scheduler.start()

    yield

    # Shutdown
    await scheduler.stop()
    await close_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Signal Watcher",
        description="API for tiered social signal extraction and watch lists",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": "Signal Watcher",
            "version": "1.0.0",
            "status": "running",
        }

    return app


app = create_app()
