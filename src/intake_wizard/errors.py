from __future__ import annotations


class IntakeError(Exception):
    """Base class for intake-wizard failures."""


class PersistenceError(IntakeError):
    """Durable write of the answer store failed (quota, permissions, bad value)."""


class UpstreamCallError(IntakeError):
    """A relay stage (storage webhook or analysis endpoint) did not succeed."""

    def __init__(self, stage: str, detail: str = "") -> None:
        self.stage = stage
        self.detail = detail
        super().__init__(f"{stage} call failed: {detail or 'no detail'}")


class TransportError(IntakeError):
    """The relay itself could not be reached or answered with garbage."""
