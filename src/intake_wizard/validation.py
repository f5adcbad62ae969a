from __future__ import annotations

import re
from typing import List

from intake_wizard.layout import OTHER_TEXT_KEY, OTHER_TOGGLE_KEY, FieldBinding, FormLayout, StepView
from intake_wizard.schemas import ValidationResult

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

NO_SERVICE_ERROR = "Please select at least one service"
OTHER_BLANK_ERROR = "Please describe the other service you need"


class StepValidator:
    """
    Per-step rules over the live field values of a `FormLayout`.

    Only the fields' `invalid` marks are touched; the answer store is never
    written.
    """

    def __init__(self, layout: FormLayout) -> None:
        self.layout = layout

    def validate_field(self, f: FieldBinding) -> str:
        """Return an error message for `f`, or "" when it passes."""
        value = str(f.value or "").strip()
        if value == "":
            f.invalid = True
            return f"{f.key} is required"
        if f.kind == "email" and not EMAIL_RE.match(value):
            f.invalid = True
            return "Please enter a valid email"
        f.invalid = False
        return ""

    def validate_step(self, position: int) -> ValidationResult:
        view = self.layout.step(position)
        if view is None or not view.fields:
            return ValidationResult(is_valid=True, errors=[])
        if view.kind == "services":
            errors = self._validate_services(view)
        else:
            errors = []
            for f in view.fields:
                if f.is_checkbox:
                    continue
                error = self.validate_field(f)
                if error:
                    errors.append(error)
        return ValidationResult(is_valid=not errors, errors=errors)

    def _validate_services(self, view: StepView) -> List[str]:
        other_text = view.find(OTHER_TEXT_KEY)
        if other_text is not None:
            other_text.invalid = False

        other_toggle = view.find(OTHER_TOGGLE_KEY)
        other_checked = other_toggle is not None and other_toggle.checked
        any_service = any(f.checked for f in view.fields if f.is_checkbox and f.key != OTHER_TOGGLE_KEY)

        if not any_service and not other_checked:
            return [NO_SERVICE_ERROR]
        if other_checked and other_text is not None and not str(other_text.value or "").strip():
            other_text.invalid = True
            return [OTHER_BLANK_ERROR]
        return []
