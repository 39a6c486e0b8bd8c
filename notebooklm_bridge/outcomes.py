"""Tagged results returned by delivery strategies."""

import enum
from dataclasses import dataclass
from typing import Optional


class OutcomeKind(enum.Enum):
    DELIVERED = "delivered"
    PARTIAL = "partial"
    NOT_READY = "not_ready"
    NOT_FOUND = "not_found"
    ENDPOINT_ERROR = "endpoint_error"
    TIMEOUT = "timeout"
    ERROR = "error"


class Step(enum.Enum):
    """Named states of the UI-driving strategy, in execution order."""

    ENSURE_SOURCES_PANEL = "EnsureSourcesPanel"
    OPEN_ADD_DIALOG = "OpenAddDialog"
    SELECT_SOURCE_TYPE = "SelectSourceType"
    POPULATE_FIELD = "PopulateField"
    CONFIRM = "Confirm"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    step: Optional[Step] = None
    code: Optional[int] = None
    reason: str = ""

    @property
    def succeeded(self) -> bool:
        # PARTIAL leaves a populated dialog for the user to confirm, so it is a hand-off.
        return self.kind in (OutcomeKind.DELIVERED, OutcomeKind.PARTIAL)

    @classmethod
    def delivered(cls) -> "Outcome":
        return cls(OutcomeKind.DELIVERED)

    @classmethod
    def partial(cls, step: Step = Step.CONFIRM, reason: str = "") -> "Outcome":
        return cls(OutcomeKind.PARTIAL, step=step, reason=reason)

    @classmethod
    def not_ready(cls, reason: str) -> "Outcome":
        return cls(OutcomeKind.NOT_READY, reason=reason)

    @classmethod
    def not_found(cls, step: Step) -> "Outcome":
        return cls(OutcomeKind.NOT_FOUND, step=step, reason=f"{step.value}: control not found")

    @classmethod
    def endpoint_error(cls, code: int, reason: str = "") -> "Outcome":
        return cls(OutcomeKind.ENDPOINT_ERROR, code=code, reason=reason)

    @classmethod
    def timeout(cls, reason: str = "") -> "Outcome":
        return cls(OutcomeKind.TIMEOUT, reason=reason)

    @classmethod
    def error(cls, reason: str) -> "Outcome":
        return cls(OutcomeKind.ERROR, reason=reason)

    def describe(self) -> str:
        parts = [self.kind.value]
        if self.step is not None:
            parts.append(self.step.value)
        if self.code is not None:
            parts.append(str(self.code))
        if self.reason:
            parts.append(self.reason)
        return " / ".join(parts)
