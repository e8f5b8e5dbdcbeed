"""
HTTP layer for MBS Vector Sync.

Provides a lightweight FastAPI server that accepts MBS item batches and
reports service health and metrics.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timezone

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from mbs_sync.core.records import InvalidBatchError, parse_batch
from mbs_sync.services.container import ServicesContainer, create_services, verify_services
from mbs_sync.services.sync_models import SyncError

logger = logging.getLogger(__name__)


def _format_uptime(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes}m{secs}s"


def create_app(
    services: ServicesContainer | None = None,
    verify_on_startup: bool = True,
) -> FastAPI:
    """
    FastAPI application factory (config sourced from .env and environment).

    Args:
        services: Prebuilt services; created from configuration if None.
        verify_on_startup: Check embedding provider and Qdrant connectivity
                   before serving. Startup fails if either is unreachable.
    """
    services = services or create_services()
    cfg = services.config
    metrics_collector = services.metrics_collector

    # One reconciliation run at a time per index
    sync_lock = asyncio.Lock()
    state: dict = {
        "start_time": datetime.now(timezone.utc),
        "last_request": None,
    }

    if not cfg.server.api_key:
        logger.warning("No server API key configured; every /process request will be rejected")

    app = FastAPI(
        title="MBS Vector Sync",
        version="0.1.0",
        description="HTTP interface for syncing MBS items into a Qdrant collection.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )

    @app.on_event("startup")
    async def startup_event():
        """Verify remote services before accepting requests."""
        if verify_on_startup:
            await verify_services(services)
        logger.info(f"Server ready on port {cfg.server.port}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await services.close()

    @app.get("/")
    async def health():
        now = datetime.now(timezone.utc)
        last_request = state["last_request"]
        return {
            "status": "up",
            "start_time": state["start_time"].isoformat(),
            "uptime": _format_uptime((now - state["start_time"]).total_seconds()),
            "last_request": last_request.isoformat() if last_request else None,
            "is_processing": sync_lock.locked(),
            "config": {
                "qdrant_host": cfg.vector_store.host,
                "qdrant_port": cfg.vector_store.port,
                "collection_name": cfg.vector_store.collection_name,
                "num_workers": cfg.sync.num_workers,
                "server_port": cfg.server.port,
                "embedding_model": cfg.embedding.model,
            },
        }

    @app.get("/metrics")
    async def metrics():
        """Return current operational metrics in JSON format."""
        return metrics_collector.get_metrics()

    @app.post("/process")
    async def process(request: Request, x_api_key: str | None = Header(default=None)):
        state["last_request"] = datetime.now(timezone.utc)

        expected_key = cfg.server.api_key
        if not expected_key or not x_api_key or not secrets.compare_digest(
            x_api_key.encode("utf-8"), expected_key.encode("utf-8")
        ):
            logger.warning("Rejected /process request with invalid API key")
            raise HTTPException(status_code=401, detail="Invalid API key")

        try:
            body = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid request body: {exc}")

        try:
            items = parse_batch(body)
        except InvalidBatchError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid request body: {exc}")

        if sync_lock.locked():
            raise HTTPException(status_code=409, detail="A sync run is already in progress")

        try:
            async with sync_lock:
                logger.info(f"Processing batch of {len(items)} items")
                sync_service = services.create_sync_service()
                summary = await sync_service.sync(items)
                return {"status": "success", **summary.to_dict()}
        except SyncError as exc:
            logger.error(f"Sync run failed: {exc}")
            raise HTTPException(status_code=500, detail=str(exc))
        except Exception as exc:
            logger.error(f"Error in /process: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail="Internal Server Error")

    return app
