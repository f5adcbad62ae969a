"""
Step-gated navigation over the five-step intake.

Position lives in three places: `WizardController.position`, the store's
`currentStep`, and the `step` query parameter of the page location.
`show_step` updates all three before the move counts as settled.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from intake_wizard.address import AddressLookup, init_address_autocomplete
from intake_wizard.client import RelayClient
from intake_wizard.config import STEP_COUNT, WizardSettings
from intake_wizard.errors import PersistenceError
from intake_wizard.layout import FormLayout, default_layout
from intake_wizard.notify import LoggingNotifier, NotificationSink
from intake_wizard.schemas import SubmissionOutcome, default_answers
from intake_wizard.state import JsonFileStorage, PersistedState, StateStorage
from intake_wizard.validation import StepValidator

logger = logging.getLogger(__name__)

STEP_PARAM = "step"


class PageLocation:
    """The shareable page URL. Writes replace the URL in place, like history.replaceState."""

    def __init__(self, url: str = "/") -> None:
        self.url = url

    def get_query_param(self, name: str) -> Optional[str]:
        for k, v in parse_qsl(urlsplit(self.url).query, keep_blank_values=True):
            if k == name:
                return v
        return None

    def set_query_param(self, name: str, value: Any) -> None:
        parts = urlsplit(self.url)
        pairs = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
        pairs.append((name, str(value)))
        self.url = urlunsplit(parts._replace(query=urlencode(pairs)))


def _coerce_step(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class WizardController:
    def __init__(
        self,
        state: PersistedState,
        layout: FormLayout,
        validator: StepValidator,
        notifier: NotificationSink,
        location: PageLocation,
        relay: Optional[RelayClient] = None,
        *,
        step_count: int = STEP_COUNT,
    ) -> None:
        self.state = state
        self.layout = layout
        self.validator = validator
        self.notifier = notifier
        self.location = location
        self.relay = relay
        self.step_count = step_count
        self.position = 1
        self._submitting = False
        if state.on_persist_error is None:
            state.on_persist_error = self._on_persist_error

    def in_range(self, step: Optional[int]) -> bool:
        return step is not None and 1 <= step <= self.step_count

    def start(self) -> int:
        """Pick the initial step (URL, then saved answers, then 1) and show it."""
        self.layout.bind(self.state)
        initial = 1
        saved = _coerce_step(self.state.get("currentStep"))
        if self.in_range(saved):
            initial = saved  # type: ignore[assignment]
        from_url = _coerce_step(self.location.get_query_param(STEP_PARAM))
        if self.in_range(from_url):
            initial = from_url  # type: ignore[assignment]
        self.show_step(initial)
        return self.position

    def show_step(self, step: int) -> None:
        if not self.in_range(step):
            logger.warning("refusing to show step %r", step)
            return
        self.layout.show_only(step)
        self.state.set("currentStep", step)
        self.location.set_query_param(STEP_PARAM, step)
        self.position = step
        logger.debug("showing step %s", step)

    def goto(self, step: Any) -> bool:
        target = _coerce_step(step)
        if not self.in_range(target):
            return False
        self.show_step(target)  # type: ignore[arg-type]
        return True

    def next(self) -> bool:
        result = self.validator.validate_step(self.position)
        if not result.is_valid:
            self.notifier.error(", ".join(result.errors))
            return False
        if self.position < self.step_count:
            self.show_step(self.position + 1)
        return True

    def back(self) -> bool:
        if self.position <= 1:
            return False
        self.show_step(self.position - 1)
        return True

    def submit(self) -> Optional[SubmissionOutcome]:
        """
        Send the answers to the relay from the final step.

        Returns None when the submit was refused before any network call.
        """
        if self._submitting:
            self.notifier.warning("Your submission is already being sent")
            return None
        if self.position != self.step_count:
            self.notifier.warning("Please complete every step before submitting")
            return None
        result = self.validator.validate_step(self.position)
        if not result.is_valid:
            self.notifier.error(", ".join(result.errors))
            return None
        if self.relay is None:
            self.notifier.error("Failed to submit form: no relay configured")
            return None

        self._submitting = True
        try:
            outcome = self.relay.submit(self.state.snapshot())
        finally:
            self._submitting = False

        if not outcome.success:
            self.notifier.error(f"Failed to submit form: {outcome.error or 'Submission failed'}")
            return outcome
        self.state.clear()
        self.notifier.success("Form submitted successfully!")
        if outcome.analysis:
            logger.info("AI analysis: %s", outcome.analysis)
        return outcome

    def close(self) -> None:
        """Release the relay connection pool. The controller owns its relay."""
        if self.relay is not None:
            self.relay.close()

    def _on_persist_error(self, err: PersistenceError) -> None:
        self.notifier.warning("Your answers could not be saved on this device; keep this page open until you submit")


def create_wizard(
    url: str = "/",
    *,
    settings: Optional[WizardSettings] = None,
    storage: Optional[StateStorage] = None,
    notifier: Optional[NotificationSink] = None,
    relay: Optional[RelayClient] = None,
    address_lookup: Optional[AddressLookup] = None,
) -> WizardController:
    """
    Assemble a started wizard the way the intake page does on load.

    The returned controller owns `relay` (built from settings when not given);
    call `close()` when the page goes away.
    """
    settings = settings or WizardSettings.from_env()
    state = PersistedState.load(storage or JsonFileStorage(settings.state_dir), default_answers())
    layout = default_layout()
    controller = WizardController(
        state,
        layout,
        StepValidator(layout),
        notifier or LoggingNotifier(),
        PageLocation(url),
        relay or RelayClient.from_settings(settings),
    )
    controller.start()
    init_address_autocomplete(address_lookup, layout.field("address"), state)
    return controller
