"""
Action server exposing the view actions over HTTP.

Speaks the action-runtime protocol: ``POST /init`` then ``POST /run`` with
``{"value": {...message...}}``. A successful run answers 200 with the store's
acknowledgment; a rejected run answers 502 with ``{"error": payload}``.
"""
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .core.config import Config, setup_logging
from .core.errors import ActionError
from .delete_view import run as run_delete_view

setup_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "couchdb-view-actions"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application"""
    logger.info(f"Starting {SERVICE_NAME} on {Config.ACTION_HOST}:{Config.ACTION_PORT}")
    logger.info(f"Default IAM token endpoint: {Config.IAM_TOKEN_URL}")
    logger.info(f"Logging level: {Config.LOG_LEVEL}")
    yield
    logger.info(f"Shutting down {SERVICE_NAME}")


app = FastAPI(
    title="CouchDB View Actions",
    description="Design document view management actions for CouchDB / Cloudant",
    version="1.0.0",
    lifespan=lifespan
)


@app.post("/init")
async def init_action():
    """Action code is part of the image; init only acknowledges."""
    return {"ok": True}


@app.post("/run")
async def run_action(request: Request):
    """Run delete-view with the message found under ``value``."""
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON."})

    message: Dict[str, Any] = body.get("value") if isinstance(body, dict) else None
    if not isinstance(message, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must contain a 'value' object."})

    try:
        result = await run_delete_view(message)
    except ActionError as e:
        logger.warning(f"[Run] Action rejected: {e.payload}")
        return JSONResponse(status_code=502, content={"error": e.payload})

    return result


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "CouchDB View Actions",
        "version": "1.0.0",
        "endpoints": {
            "init": "/init",
            "run": "/run",
            "health": "/health"
        }
    }
