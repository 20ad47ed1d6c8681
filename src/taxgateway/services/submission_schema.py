from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SubmissionStatus(str, Enum):
    """GovTalk outcome of a single upstream submit call."""

    ACCEPTED = "ACCEPTED"
    SUBMITTED = "SUBMITTED"
    SUBMITTED_NO_RECEIPT = "SUBMITTED_NO_RECEIPT"
    DEPARTMENTAL_ERROR = "DEPARTMENTAL_ERROR"
    FATAL_ERROR = "FATAL_ERROR"


ERROR_STATUSES = frozenset({SubmissionStatus.DEPARTMENTAL_ERROR, SubmissionStatus.FATAL_ERROR})


class PollStatus(str, Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    FATAL_ERROR = "FATAL_ERROR"
    DEPARTMENTAL_ERROR = "DEPARTMENTAL_ERROR"


class GovTalkError(BaseModel):
    """
    Description: Structured error returned by the gateway inside a successful exchange.
    Layer: Domain
    Input: upstream GovTalk error block
    Output: number/type/text triple
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    error_number: str
    error_type: str
    error_text: str


class ResponseEndPoint(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str
    poll_interval_seconds: int = Field(..., ge=0)


class SubmissionOutcome(BaseModel):
    """
    Description: Result of one upstream submit call, consumed immediately by the renderer.
    Layer: Domain
    Input: upstream submission service response
    Output: status + raw body + GovTalk metadata
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: SubmissionStatus
    raw_body: str
    correlation_id: str
    gateway_timestamp: Optional[str] = None
    response_end_point: Optional[ResponseEndPoint] = None
    error: Optional[GovTalkError] = None

    @model_validator(mode="after")
    def _check_status_fields(self) -> "SubmissionOutcome":
        if self.error is not None and self.status not in ERROR_STATUSES:
            raise ValueError(f"error block is not allowed for status {self.status.value}")
        if self.status is SubmissionStatus.ACCEPTED and self.response_end_point is None:
            raise ValueError("ACCEPTED outcome requires a response end point")
        return self


class EnvelopeFlags(BaseModel):
    """Feature switches forwarded to the envelope builder for gateway test scenarios."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    enable_missing_mandatory: bool = False
    enable_irmark_bad: bool = False


class BuiltSubmissionPayload(BaseModel):
    """
    Description: Envelope produced by the external builder for one submission.
    Layer: Port
    Input: submit request + correlation id + flags
    Output: serialised envelope + IR mark
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    envelope: str
    correlation_id: str
    ir_mark: str


class ConversionResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    ok: bool
    json_payload: Optional[Any] = None
    error: Optional[str] = None


class AuditResponseReceived(BaseModel):
    """
    Description: Audit event describing what the gateway answered for a submission.
    Layer: Audit
    Input: rendered HTTP status + converted upstream body
    Output: event handed to the audit port
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    status_label: str
    payload: Any
