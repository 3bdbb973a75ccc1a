"""
Main entry point for the Nexus HR service.

Creates the FastAPI application instance for uvicorn. The lifespan owns the
Neo4j driver handle and the LLM gateway client and closes both on shutdown.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.error_handlers import register_error_handlers
from src.api.routes.health import router as health_router
from src.api.routes.health import mark_started
from src.api.routes.talent_search import router as talent_search_router
from src.clients.evidence import StubEvidenceGateway
from src.clients.graph_gateway import (
    GraphQueryGateway,
    GraphStoreHandle,
    Neo4jClientConfig,
)
from src.clients.llm_gateway import LLMGatewayOracle
from src.core.config import get_settings
from src.core.logging import configure_logging, get_logger
from src.pipelines.orchestrator import create_talent_search_pipeline


# Configure structured logging on module load
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    On startup: create the graph store handle, the oracle client and the
    pipeline. On shutdown: close the oracle client and the Neo4j driver.
    """
    settings = get_settings()
    logger.info(
        "Starting nexus-hr service",
        port=settings.port,
        stages=settings.pipeline_stages,
    )

    mark_started(app)

    graph_store = GraphStoreHandle(Neo4jClientConfig.from_settings(settings))
    if await graph_store.health_check():
        logger.info("Neo4j connected successfully", uri=settings.neo4j_uri)
        app.state.neo4j_status = "connected"
    else:
        logger.warning("Neo4j health check failed", uri=settings.neo4j_uri)
        app.state.neo4j_status = "unhealthy"

    oracle = LLMGatewayOracle.from_settings(settings)
    app.state.graph_store = graph_store
    app.state.oracle = oracle
    app.state.pipeline = create_talent_search_pipeline(
        settings,
        oracle=oracle,
        graph_gateway=GraphQueryGateway(graph_store),
        evidence_gateway=StubEvidenceGateway(),
    )

    yield

    logger.info("Shutting down nexus-hr service")
    await oracle.close()
    logger.info("LLM gateway client closed")
    graph_store.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers:
    - talent_search_router: POST /v1/talent-search
    - health_router: GET /health, /health/ready, /health/live
    """
    app = FastAPI(
        title="Nexus HR",
        description="Multi-stage talent search over a Neo4j talent graph",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(talent_search_router)
    app.include_router(health_router)

    return app


# Create application instance
app = create_app()
