"""
FastAPI front-end exposing agent invocations over HTTP.

``POST /agents/{agent_id}/invoke`` takes a JSON body ``{"text": ...}``;
``POST /agents/{agent_id}/invoke/image`` takes a multipart form with a
``text`` field and an ``image`` file.  Both answer ``{"agent_id", "output"}``
where *output* is the flattened thread transcript.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from azure.core.exceptions import AzureError
from fastapi import FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import ENABLE_DEBUG, env
from orchestrator.session_pool import AgentSessionPool, ImageUpload
from utils.errors import (
    AgentConnectionError,
    AuthenticationError,
    ConfigurationError,
    InvalidArgumentError,
    RunExecutionError,
    RunTimeoutError,
)

# ──────────────────────────────────────────────────────────────
#  Logging setup
# ──────────────────────────────────────────────────────────────

_logger = logging.getLogger(__name__)
if ENABLE_DEBUG and not logging.getLogger().handlers:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s | %(message)s")

# ──────────────────────────────────────────────────────────────
#  Helper utilities
# ──────────────────────────────────────────────────────────────


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": {"message": message}}, status_code=status_code)


def _ok(agent_id: str, output: str) -> JSONResponse:
    body = {"agent_id": agent_id, "output": output}
    if ENABLE_DEBUG:
        _logger.debug("Response body:\n%s", json.dumps(body, indent=2, ensure_ascii=False))
    return JSONResponse(body, status_code=status.HTTP_200_OK)


async def _dispatch(agent_id: str, text: str, image: Optional[ImageUpload] = None) -> JSONResponse:
    """Run one invocation on the pool and translate failures into HTTP errors."""
    try:
        output = await session_pool.invoke_async(agent_id, text, image)
    except InvalidArgumentError as exc:
        return _error(str(exc), status.HTTP_400_BAD_REQUEST)
    except (ConfigurationError, AuthenticationError, AgentConnectionError) as exc:
        _logger.error("Agent service unavailable: %s", exc)
        return _error(f"Agent service unavailable: {exc}", status.HTTP_503_SERVICE_UNAVAILABLE)
    except RunExecutionError as exc:
        return _error(str(exc), status.HTTP_502_BAD_GATEWAY)
    except RunTimeoutError as exc:
        return _error(str(exc), status.HTTP_504_GATEWAY_TIMEOUT)
    except AzureError as exc:
        _logger.error("Agent service request failed: %s", exc)
        return _error(f"Agent service error: {exc}", status.HTTP_502_BAD_GATEWAY)
    return _ok(agent_id, output)


# ──────────────────────────────────────────────────────────────
#  Application bootstrap
# ──────────────────────────────────────────────────────────────

@asynccontextmanager
async def _lifespan(_app: FastAPI):
    yield
    session_pool.shutdown()


app = FastAPI(lifespan=_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in env("CORS_ALLOW_ORIGINS", "*").split(",")],
    allow_credentials=env("CORS_ALLOW_CREDENTIALS", True, cast=bool),
    allow_methods=["*"],
    allow_headers=["*"],
)

session_pool = AgentSessionPool()


# ──────────────────────────────────────────────────────────────
#  Endpoints
# ──────────────────────────────────────────────────────────────


@app.post("/agents/{agent_id}/invoke", name="invoke_text")
async def invoke_text(agent_id: str, request: Request):
    """Forward a plain-text prompt to *agent_id*."""
    if ENABLE_DEBUG:
        _logger.debug(
            "Incoming request: %s %s from %s",
            request.method,
            request.url.path,
            request.client or "unknown",
        )

    try:
        payload = await request.json()
    except ValueError:
        return _error("Invalid JSON", status.HTTP_400_BAD_REQUEST)
    if not isinstance(payload, dict):
        return _error("Request body must be a JSON object", status.HTTP_400_BAD_REQUEST)

    text = payload.get("text")
    if not isinstance(text, str):
        return _error("'text' must be a string", status.HTTP_400_BAD_REQUEST)

    return await _dispatch(agent_id, text)


@app.post("/agents/{agent_id}/invoke/image", name="invoke_image")
async def invoke_image(
        agent_id: str,
        text: str = Form(""),
        image: UploadFile = File(...),
):
    """Forward a prompt plus one image attachment to *agent_id*."""
    if ENABLE_DEBUG:
        _logger.debug("Incoming image invocation for %s: %s (%s)", agent_id, image.filename, image.content_type)

    upload = ImageUpload(
        data=await image.read(),
        filename=image.filename or "",
        content_type=image.content_type or "",
    )
    return await _dispatch(agent_id, text, upload)


@app.get("/health", name="health")
async def health():
    return {"status": "ok"}


# ──────────────────────────────────────────────────────────────
#  Main entry-point
# ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    host: str = env("AGENT_SERVICE_HOST", "0.0.0.0")
    port: int = env("AGENT_SERVICE_PORT", 8000, cast=int)
    reload: bool = env("AGENT_SERVICE_RELOAD", False, cast=bool)

    uvicorn.run(app, host=host, port=port, reload=reload)
