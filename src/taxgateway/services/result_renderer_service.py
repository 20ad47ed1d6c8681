from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from taxgateway.core.ports import ContentConverter
from taxgateway.services.audit_service import response_audit_payload
from taxgateway.services.submission_schema import (
    AuditResponseReceived,
    SubmissionOutcome,
    SubmissionStatus,
)

Clock = Callable[[], datetime]

HTTP_OK = 200
HTTP_ACCEPTED = 202


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_instant(moment: datetime) -> str:
    """ISO-8601 UTC instant with a Z suffix, e.g. 2025-09-01T10:00:00.123456Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class RenderedResponse:
    status_code: int
    body: Dict[str, Any]
    audit_event: AuditResponseReceived


def _error_block(outcome: SubmissionOutcome, default_text: str) -> Dict[str, Any]:
    err = outcome.error
    if err is None:
        return {"error": {"text": default_text}}
    return {"error": {"number": err.error_number, "type": err.error_type, "text": err.error_text}}


def render_submission_response(
    submission_id: str,
    ir_mark: str,
    outcome: SubmissionOutcome,
    *,
    converter: ContentConverter,
    clock: Clock = utc_now,
) -> RenderedResponse:
    """
    Description: Map an upstream submission outcome to the HTTP answer and its audit event.
    Layer: Domain
    Input: submission id + IR mark + SubmissionOutcome
    Output: RenderedResponse (status code, JSON body, one response audit event)
    """
    ts = (outcome.gateway_timestamp or "").strip()
    base: Dict[str, Any] = {
        "submissionId": submission_id,
        "hmrcMarkGenerated": ir_mark,
        "correlationId": outcome.correlation_id,
        "gatewayTimestamp": ts or format_instant(clock()),
        "status": outcome.status.value,
    }

    status = outcome.status
    if status is SubmissionStatus.ACCEPTED:
        code = HTTP_ACCEPTED
        endpoint = outcome.response_end_point
        if endpoint is None:
            raise ValueError("ACCEPTED outcome without a response end point")
        base["responseEndPoint"] = {
            "url": endpoint.url,
            "pollIntervalSeconds": endpoint.poll_interval_seconds,
        }
    elif status in (SubmissionStatus.SUBMITTED, SubmissionStatus.SUBMITTED_NO_RECEIPT):
        code = HTTP_OK
    elif status is SubmissionStatus.DEPARTMENTAL_ERROR:
        code = HTTP_OK
        base.update(_error_block(outcome, "departmental error"))
    elif status is SubmissionStatus.FATAL_ERROR:
        code = HTTP_OK
        base.update(_error_block(outcome, "fatal"))
    else:  # pragma: no cover
        raise ValueError(f"unhandled submission status {status!r}")

    event = AuditResponseReceived(
        status_label=str(code),
        payload=response_audit_payload(converter, outcome.raw_body),
    )
    return RenderedResponse(status_code=code, body=base, audit_event=event)
