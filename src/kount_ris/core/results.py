"""Tagged outcome of a validate/send/parse cycle, returned by try_process."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import ValidationError
from .response import Response


class Outcome(str, Enum):
    """Result tag of KountRisClient.try_process."""

    SUCCESS = "success"
    VALIDATION_FAILURE = "validation_failure"
    TRANSPORT_FAILURE = "transport_failure"
    RESPONSE_FAILURE = "response_failure"


class ProcessResult(BaseModel):
    """Tagged outcome of one validate/send/parse cycle.

    Exactly one of ``response`` (on success) or ``error`` (on any failure) is
    set. Validation failures also carry the structured errors and the
    combined newline-joined message.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcome: Outcome
    response: Optional[Response] = None
    validation_errors: list[ValidationError] = Field(default_factory=list)
    error_message: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS
