from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional

from intake_wizard.schemas import SERVICE_KEYS
from intake_wizard.state import PersistedState

logger = logging.getLogger(__name__)

FieldKind = Literal["text", "email", "tel", "select", "date", "textarea", "checkbox"]
StepKind = Literal["plain", "services"]

OTHER_TOGGLE_KEY = "otherSelected"
OTHER_TEXT_KEY = "other"


@dataclass
class FieldBinding:
    """One input on the page, bound to a FormAnswers key."""

    key: str
    kind: FieldKind = "text"
    label: str = ""
    value: str = ""
    checked: bool = False
    invalid: bool = False

    @property
    def is_checkbox(self) -> bool:
        return self.kind == "checkbox"

    def current(self) -> Any:
        return self.checked if self.is_checkbox else self.value

    def load(self, stored: Any) -> None:
        if self.is_checkbox:
            self.checked = bool(stored)
        else:
            self.value = "" if stored is None else str(stored)


@dataclass
class StepView:
    number: int
    title: str
    fields: List[FieldBinding] = field(default_factory=list)
    kind: StepKind = "plain"
    hidden: bool = True

    def find(self, key: str) -> Optional[FieldBinding]:
        for f in self.fields:
            if f.key == key:
                return f
        return None


class FormLayout:
    """
    Ordered step views and the two-way binding between their fields and the store.

    `bind()` mirrors page start-up: fields pick up stored answers, and a field
    that already carries a value the store lacks seeds the store instead.
    """

    def __init__(self, steps: List[StepView]) -> None:
        self.steps: Dict[int, StepView] = {s.number: s for s in steps}
        self._by_key: Dict[str, FieldBinding] = {}
        for step in steps:
            for f in step.fields:
                self._by_key[f.key] = f
        self._state: Optional[PersistedState] = None
        self._unsubscribe = None

    def step(self, number: int) -> Optional[StepView]:
        return self.steps.get(number)

    def fields(self) -> Iterator[FieldBinding]:
        for number in sorted(self.steps):
            yield from self.steps[number].fields

    def field(self, key: str) -> Optional[FieldBinding]:
        return self._by_key.get(key)

    def bind(self, state: PersistedState) -> None:
        self._state = state
        seed: Dict[str, Any] = {}
        for f in self.fields():
            stored = state.get(f.key)
            if f.is_checkbox:
                f.checked = bool(stored)
            elif stored:
                f.value = str(stored)
            elif f.value:
                seed[f.key] = f.value
        if seed:
            state.update(seed)
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = state.subscribe(self._on_state_change)
        logger.debug("input map initialised: %s", list(self._by_key))

    def handle_input(self, key: str, value: Any) -> None:
        """An input event: update the field, then the store."""
        f = self._by_key.get(key)
        if f is not None:
            f.load(value)
            value = f.current()
        if self._state is None:
            logger.warning("input %r before layout was bound to a store", key)
            return
        self._state.set(key, value)

    def show_only(self, number: int) -> None:
        for n, view in self.steps.items():
            view.hidden = n != number

    def _on_state_change(self, key: str, value: Any) -> None:
        f = self._by_key.get(key)
        if f is not None and f.current() != value:
            f.load(value)


def default_layout() -> FormLayout:
    """The five-step landscaping intake."""
    services = [FieldBinding(key=k, kind="checkbox", label=k) for k in SERVICE_KEYS]
    services += [
        FieldBinding(key=OTHER_TOGGLE_KEY, kind="checkbox", label="Other"),
        FieldBinding(key=OTHER_TEXT_KEY, kind="textarea", label="Other service"),
    ]
    return FormLayout(
        [
            StepView(
                number=1,
                title="Your name",
                fields=[
                    FieldBinding(key="firstName", label="First name"),
                    FieldBinding(key="lastName", label="Last name"),
                ],
            ),
            StepView(
                number=2,
                title="Contact",
                fields=[
                    FieldBinding(key="email", kind="email", label="Email"),
                    FieldBinding(key="phone", kind="tel", label="Phone"),
                ],
            ),
            StepView(
                number=3,
                title="Property address",
                fields=[
                    FieldBinding(key="address", label="Street address"),
                    FieldBinding(key="city", label="City"),
                    FieldBinding(key="state", kind="select", label="State"),
                    FieldBinding(key="zip", label="ZIP"),
                ],
            ),
            StepView(number=4, title="Services", fields=services, kind="services"),
            StepView(
                number=5,
                title="Timing",
                fields=[FieldBinding(key="doneByDate", kind="date", label="Done by")],
            ),
        ]
    )
