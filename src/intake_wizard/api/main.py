from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from intake_wizard.api.http_logging import install_http_logging
from intake_wizard.api.routes.health import router as health_router
from intake_wizard.api.routes.submit import cors_headers, router as submit_router
from intake_wizard.config import RelaySettings, load_env_files
from intake_wizard.schemas import SubmissionOutcome

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[RelaySettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    if settings is None:
        load_env_files()
        settings = RelaySettings.from_env()

    # One upstream client per app; the timeout bounds both relay stages.
    # Redirects are followed through to the final webhook handler.
    http_client = httpx.AsyncClient(timeout=settings.timeout_sec, transport=transport, follow_redirects=True)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(title="intake-relay", version="1.0.0", lifespan=lifespan)
    app.state.relay_settings = settings
    app.state.http_client = http_client

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = f"err_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        logger.error("[relay] 500 internal_error requestId=%s path=%s err=%r", request_id, request.url.path, exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=SubmissionOutcome.failed("internal error").to_wire(),
            headers=cors_headers(settings),
        )

    app.include_router(health_router)
    app.include_router(submit_router)
    install_http_logging(app)
    return app
