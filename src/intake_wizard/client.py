from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from intake_wizard.config import WizardSettings
from intake_wizard.errors import TransportError
from intake_wizard.schemas import FormAnswers, SubmissionOutcome

logger = logging.getLogger(__name__)


class RelayClient:
    """
    Posts the full answer snapshot to the submission relay.

    Always returns a SubmissionOutcome: transport failures, unreadable bodies
    and relay-reported failures all come back as `success=False`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_sec: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self._client = httpx.Client(timeout=timeout_sec, transport=transport, follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: WizardSettings, **kwargs: Any) -> "RelayClient":
        return cls(settings.relay_url, timeout_sec=settings.timeout_sec, **kwargs)

    def close(self) -> None:
        self._client.close()

    def submit(self, answers: FormAnswers) -> SubmissionOutcome:
        try:
            body = self._post(answers)
        except TransportError as exc:
            logger.warning("relay submit failed: %s", exc)
            return SubmissionOutcome.failed(str(exc))
        try:
            outcome = SubmissionOutcome.model_validate(body)
        except ValidationError:
            return SubmissionOutcome.failed("Submission failed")
        if not outcome.success:
            return SubmissionOutcome.failed(outcome.error or "Submission failed")
        return outcome

    def _post(self, answers: FormAnswers) -> Dict[str, Any]:
        try:
            resp = self._client.post(self.url, json=answers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"could not reach relay: {exc}") from exc
        try:
            body = resp.json()
        except ValueError as exc:
            raise TransportError(f"relay answered {resp.status_code} with a non-JSON body") from exc
        if not isinstance(body, dict):
            raise TransportError(f"relay answered {resp.status_code} with an unexpected body")
        return body
