from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

AnswerValue = Union[str, bool, int]
FormAnswers = Dict[str, Any]
Severity = Literal["success", "error", "warning"]

SERVICE_KEYS: List[str] = [
    "newPlanting",
    "decorativeStone",
    "maintenance",
    "landscapeLighting",
    "newLawnInstall",
    "specializedExcavation",
    "treeRemoval",
    "treePruning",
]

DEFAULT_ANSWERS: Dict[str, AnswerValue] = {
    "firstName": "",
    "lastName": "",
    "email": "",
    "phone": "",
    "address": "",
    "city": "",
    "state": "",
    "zip": "",
    "currentStep": 1,
    **{key: False for key in SERVICE_KEYS},
    "otherSelected": False,
    "other": "",
    "doneByDate": "",
}


def default_answers() -> FormAnswers:
    return dict(DEFAULT_ANSWERS)


class ValidationResult(BaseModel):
    """Outcome of validating one wizard step. Never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(default=True, alias="isValid")
    errors: List[str] = Field(default_factory=list, description="One message per offending field, in field order")


class SubmissionOutcome(BaseModel):
    """Single combined result of one submit attempt."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    analysis: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "SubmissionOutcome":
        return cls(success=False, error=error)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AddressResult(BaseModel):
    """What the address autocomplete yields for a selected place."""

    model_config = ConfigDict(populate_by_name=True)

    formatted_address: str = Field(..., alias="formattedAddress")
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class StageResult(BaseModel):
    """Typed result of one relay pipeline stage."""

    stage: str
    ok: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
