from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.status import (
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from intake_wizard.config import RelaySettings
from intake_wizard.relay import relay_submission
from intake_wizard.schemas import SubmissionOutcome

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submit"])


def cors_headers(settings: RelaySettings, *, preflight: bool = False) -> Dict[str, str]:
    headers = {"Access-Control-Allow-Origin": settings.allow_origin}
    if preflight:
        headers["Access-Control-Allow-Methods"] = "POST, OPTIONS"
        headers["Access-Control-Allow-Headers"] = "Content-Type"
    return headers


def _outcome_response(status: int, outcome: SubmissionOutcome, settings: RelaySettings) -> JSONResponse:
    return JSONResponse(status_code=status, content=outcome.to_wire(), headers=cors_headers(settings))


@router.options("/")
async def preflight(request: Request) -> Response:
    settings: RelaySettings = request.app.state.relay_settings
    return Response(status_code=HTTP_204_NO_CONTENT, headers=cors_headers(settings, preflight=True))


@router.post("/")
async def submit(request: Request) -> JSONResponse:
    settings: RelaySettings = request.app.state.relay_settings
    if not settings.is_configured:
        logger.error("[relay] STORAGE_WEBHOOK_URL / OPENAI_API_KEY not set")
        return _outcome_response(
            HTTP_500_INTERNAL_SERVER_ERROR, SubmissionOutcome.failed("relay not configured"), settings
        )

    try:
        answers = await request.json()
    except ValueError:
        answers = None
    if not isinstance(answers, dict):
        return _outcome_response(HTTP_400_BAD_REQUEST, SubmissionOutcome.failed("invalid request body"), settings)

    status, outcome = await relay_submission(request.app.state.http_client, settings, answers)
    return _outcome_response(status, outcome, settings)


@router.api_route("/", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def method_not_allowed() -> PlainTextResponse:
    return PlainTextResponse("Method not allowed", status_code=HTTP_405_METHOD_NOT_ALLOWED)
