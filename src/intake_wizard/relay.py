"""
Submission relay pipeline: store -> analyze -> combine.

The storage webhook holds the authoritative record, so analysis only runs once
storage succeeded. A failed analysis still fails the whole submission; callers
never see a partial success.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

import httpx

from intake_wizard.config import RelaySettings
from intake_wizard.errors import UpstreamCallError
from intake_wizard.schemas import FormAnswers, StageResult, SubmissionOutcome

logger = logging.getLogger(__name__)

STORAGE_FAILURE = "storage failure"
ANALYSIS_FAILURE = "analysis failure"
SUCCESS_MESSAGE = "Form processed successfully"
SYSTEM_PROMPT = "You are a helpful assistant processing form submissions."

HTTP_OK = 200
HTTP_BAD_GATEWAY = 502


def build_analysis_messages(answers: FormAnswers) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Please analyze this form submission: {json.dumps(answers, ensure_ascii=False)}",
        },
    ]


def extract_analysis(body: Any) -> str:
    """Pull `choices[0].message.content` out of a chat-completions body."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamCallError("analysis", "response has no choices[0].message.content") from exc
    if not isinstance(content, str):
        raise UpstreamCallError("analysis", "message content is not a string")
    return content


async def _post_json(client: httpx.AsyncClient, stage: str, url: str, **kwargs: Any) -> httpx.Response:
    try:
        resp = await client.post(url, **kwargs)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise UpstreamCallError(stage, f"{type(exc).__name__}: {exc}") from exc
    if not resp.is_success:
        raise UpstreamCallError(stage, f"status {resp.status_code}")
    return resp


async def store_submission(client: httpx.AsyncClient, settings: RelaySettings, answers: FormAnswers) -> StageResult:
    try:
        await _post_json(client, "storage", settings.storage_webhook_url, json=answers)
    except UpstreamCallError as exc:
        logger.warning("[relay] %s", exc)
        return StageResult(stage="store", ok=False, error=STORAGE_FAILURE)
    return StageResult(stage="store", ok=True)


async def analyze_submission(client: httpx.AsyncClient, settings: RelaySettings, answers: FormAnswers) -> StageResult:
    payload = {
        "model": settings.analysis_model,
        "messages": build_analysis_messages(answers),
        "temperature": settings.analysis_temperature,
    }
    headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
    try:
        resp = await _post_json(client, "analysis", settings.analysis_api_url, json=payload, headers=headers)
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamCallError("analysis", "response is not JSON") from exc
        analysis = extract_analysis(body)
    except UpstreamCallError as exc:
        logger.warning("[relay] %s", exc)
        return StageResult(stage="analyze", ok=False, error=ANALYSIS_FAILURE)
    return StageResult(stage="analyze", ok=True, data={"analysis": analysis})


def combine(stored: StageResult, analyzed: StageResult) -> SubmissionOutcome:
    for stage in (stored, analyzed):
        if not stage.ok:
            return SubmissionOutcome.failed(stage.error or "submission failure")
    analysis = (analyzed.data or {}).get("analysis")
    return SubmissionOutcome(success=True, message=SUCCESS_MESSAGE, analysis=analysis)


async def relay_submission(
    client: httpx.AsyncClient,
    settings: RelaySettings,
    answers: FormAnswers,
) -> Tuple[int, SubmissionOutcome]:
    """Run the pipeline and return `(http_status, outcome)`."""
    stored = await store_submission(client, settings, answers)
    if not stored.ok:
        return HTTP_BAD_GATEWAY, SubmissionOutcome.failed(stored.error or STORAGE_FAILURE)

    analyzed = await analyze_submission(client, settings, answers)
    outcome = combine(stored, analyzed)
    status = HTTP_OK if outcome.success else HTTP_BAD_GATEWAY
    logger.info("[relay] submission processed success=%s", outcome.success)
    return status, outcome
