"""FastAPI application for Codebase Memory.

This module exposes a class-based server wrapper (no global mutable state).

- `app` is exported for `uvicorn server.app:app` and the tests.
- Preferred entrypoint: `src.app:app` (see `src/app.py`).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.requests import Request

from core import CodebaseMemory, Settings
from core.errors import (
    MemoryPersistenceError,
    ProjectFileNotFoundError,
    ToolNotFoundError,
    ToolValidationError,
)
from core.utils.response_formatter import format_response


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging for the server."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=True,
    )
    logging.getLogger("core").setLevel(level)
    logging.getLogger("server").setLevel(level)


logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class StatusResponse(BaseModel):
    """Response model for system status."""

    initialized: bool = Field(..., description="Whether the engine is ready")
    project_root: str = Field(..., description="Path to the analyzed project")
    memory_dir: str = Field(..., description="Path to the persisted memory")
    tool_count: int = Field(..., description="Number of registered tools")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Server health status")
    system_ready: bool = Field(..., description="Whether the engine is ready")


class ToolListResponse(BaseModel):
    """Response model for the tool catalog."""

    tools: list = Field(..., description="Name, description and input schema per tool")
    count: int = Field(..., description="Total number of tools")


class ToolCallResponse(BaseModel):
    """Response model for a tool call."""

    tool: str = Field(..., description="Name of the tool that ran")
    result: Any = Field(..., description="JSON report produced by the tool")


class MemoryEntriesResponse(BaseModel):
    """Response model for memory queries."""

    entries: list = Field(..., description="Matching entries, newest first")
    count: int = Field(..., description="Number of entries returned")


class CleanupRequest(BaseModel):
    """Request model for memory cleanup."""

    older_than: Optional[datetime] = Field(None, description="Remove entries stored before this instant")
    older_than_days: Optional[int] = Field(None, ge=0, description="Remove entries older than this many days")


class CleanupResponse(BaseModel):
    """Response model for memory cleanup."""

    removed: int = Field(..., description="Number of entries removed")
    older_than: datetime = Field(..., description="Cutoff that was applied")


class RecommendationsResponse(BaseModel):
    """Response model for contextual recommendations."""

    recommendations: list = Field(..., description="Recommendations sorted by priority")
    count: int = Field(..., description="Number of recommendations")


class CodebaseMemoryServer:
    """Encapsulates FastAPI app + CodebaseMemory lifecycle."""

    def __init__(self, *, settings: Optional[Settings] = None, log_level: int = logging.INFO) -> None:
        configure_logging(log_level)
        self.settings = settings
        self.system: Optional[CodebaseMemory] = None

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        """Lifespan event handler for startup and shutdown."""
        logger.info("=" * 70)
        logger.info("🚀 CODEBASE MEMORY SERVER STARTING")
        logger.info("=" * 70)

        try:
            settings = self.settings or Settings.from_env()
            logger.info("⚙️  Initializing engine for %s...", settings.project_root)
            self.system = CodebaseMemory.from_settings(settings)
            logger.info("✅ Server ready!")
            logger.info("=" * 70)
        except (OSError, ValueError) as e:
            logger.error(f"❌ Failed to initialize system: {e}")
            # Continue anyway - API will return 503 until ready.

        yield

        logger.info("👋 Server shutting down...")

    def create_app(self) -> FastAPI:
        """Create and configure a FastAPI application instance."""
        app = FastAPI(
            title="Codebase Memory API",
            description="REST API for codebase analysis, pattern validation and analysis memory",
            version="1.0.0",
            lifespan=self.lifespan,
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        def require_system() -> CodebaseMemory:
            if self.system is None:
                raise HTTPException(
                    status_code=503,
                    detail="System not initialized. Please wait for initialization to complete.",
                )
            return self.system

        @app.get("/", tags=["General"])
        async def root() -> dict[str, Any]:
            return {
                "name": "Codebase Memory API",
                "version": "1.0.0",
                "docs": "/docs",
                "health": "/health",
                "validEndpoints": [
                    "GET /health",
                    "GET /status",
                    "GET /tools",
                    "POST /tools/{name}",
                    "GET /memory/stats",
                    "GET /memory/entries",
                    "GET /memory/evolution",
                    "POST /memory/cleanup",
                    "POST /context/refresh",
                    "GET /context/file",
                    "GET /recommendations",
                    "GET /dependencies/stats",
                ],
            }

        @app.get("/health", response_model=HealthResponse, tags=["General"])
        async def health_check() -> HealthResponse:
            return HealthResponse(status="healthy", system_ready=self.system is not None)

        @app.get("/status", response_model=StatusResponse, tags=["General"])
        async def get_status() -> StatusResponse:
            system = require_system()
            return StatusResponse(
                initialized=True,
                project_root=system.project_root,
                memory_dir=system.memory_dir,
                tool_count=len(system.list_tools()),
            )

        @app.get("/tools", response_model=ToolListResponse, tags=["Tools"])
        async def list_tools() -> ToolListResponse:
            tools = require_system().list_tools()
            return ToolListResponse(tools=tools, count=len(tools))

        @app.post("/tools/{name}", response_model=ToolCallResponse, tags=["Tools"])
        async def call_tool(name: str, arguments: Optional[dict[str, Any]] = Body(None)) -> ToolCallResponse:
            system = require_system()
            logger.info(f"🔧 Tool call: {name}")
            result = await system.call_tool(name, arguments or {})
            logger.info("✅ Tool call completed")
            return ToolCallResponse(tool=name, result=result)

        @app.get("/memory/stats", tags=["Memory"])
        async def memory_stats() -> dict[str, Any]:
            return require_system().memory_stats()

        @app.get("/memory/entries", response_model=MemoryEntriesResponse, tags=["Memory"])
        async def memory_entries(
            type: Optional[str] = Query(None, description="Entry type to filter on"),
            since: Optional[datetime] = Query(None, description="Only entries stored at or after this instant"),
            tags: Optional[list[str]] = Query(None, description="Entries carrying any of these tags"),
            limit: Optional[int] = Query(None, ge=0, description="Maximum number of entries"),
        ) -> MemoryEntriesResponse:
            entries = require_system().query_memory(type=type, since=since, tags=tags, limit=limit)
            return MemoryEntriesResponse(entries=format_response(entries), count=len(entries))

        @app.get("/memory/evolution", tags=["Memory"])
        async def memory_evolution(timespan: str = Query("30d", description="Window such as 7d, 4w, 6m or 1y")) -> dict[str, Any]:
            return require_system().analyze_evolution(timespan)

        @app.post("/memory/cleanup", response_model=CleanupResponse, tags=["Memory"])
        async def memory_cleanup(request: CleanupRequest) -> CleanupResponse:
            system = require_system()
            if request.older_than is not None:
                cutoff = request.older_than
            elif request.older_than_days is not None:
                cutoff = datetime.now(timezone.utc) - timedelta(days=request.older_than_days)
            else:
                raise HTTPException(status_code=422, detail="Provide older_than or older_than_days")
            removed = await system.cleanup_memory(cutoff)
            return CleanupResponse(removed=removed, older_than=cutoff)

        @app.post("/context/refresh", tags=["Context"])
        async def refresh_context() -> dict[str, Any]:
            context = await require_system().refresh_context()
            logger.info("✅ Context refreshed")
            return format_response(context)

        @app.get("/context/file", tags=["Context"])
        async def file_context(path: str = Query(..., description="Project-relative file path")) -> dict[str, Any]:
            return await require_system().analyze_code_context(path)

        @app.get("/recommendations", response_model=RecommendationsResponse, tags=["Context"])
        async def recommendations() -> RecommendationsResponse:
            recs = await require_system().get_contextual_recommendations()
            return RecommendationsResponse(recommendations=recs, count=len(recs))

        @app.get("/dependencies/stats", tags=["Dependencies"])
        async def dependency_stats() -> dict[str, Any]:
            return require_system().dependency_stats()

        @app.exception_handler(ToolNotFoundError)
        async def tool_not_found_handler(request: Request, exc: ToolNotFoundError) -> JSONResponse:
            return JSONResponse(
                status_code=404,
                content={"error": "Tool Not Found", "detail": str(exc), "tool": exc.name},
            )

        @app.exception_handler(ToolValidationError)
        async def tool_validation_handler(request: Request, exc: ToolValidationError) -> JSONResponse:
            logger.warning(f"⚠️ {exc}")
            return JSONResponse(
                status_code=422,
                content={"error": "Invalid Parameters", "tool": exc.tool, "detail": exc.errors},
            )

        @app.exception_handler(ProjectFileNotFoundError)
        async def file_not_found_handler(request: Request, exc: ProjectFileNotFoundError) -> JSONResponse:
            return JSONResponse(
                status_code=404,
                content={"error": "File Not Found", "detail": str(exc), "file": exc.file_path},
            )

        @app.exception_handler(MemoryPersistenceError)
        async def persistence_handler(request: Request, exc: MemoryPersistenceError) -> JSONResponse:
            logger.error(f"❌ Memory persistence failed: {exc}")
            return JSONResponse(
                status_code=500,
                content={"error": "Memory Persistence Failed", "detail": str(exc)},
            )

        @app.exception_handler(404)
        async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
            detail = getattr(exc, "detail", None)
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Not Found",
                    "detail": detail if detail and detail != "Not Found" else "The requested endpoint does not exist",
                    "docs": "/docs",
                },
            )

        @app.exception_handler(500)
        async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
            logger.exception("Internal server error")
            return JSONResponse(
                status_code=500,
                content={"error": "Internal Server Error", "detail": "An unexpected error occurred"},
            )

        return app


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Factory for creating an app instance (useful for tests/uvicorn)."""
    return CodebaseMemoryServer(settings=settings).create_app()


app = create_app()
