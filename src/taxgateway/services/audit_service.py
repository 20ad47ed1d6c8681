from __future__ import annotations

import json
import logging
from typing import Any

from taxgateway.core.ports import AuditResult, AuditService, ContentConverter
from taxgateway.services.submission_schema import (
    AuditResponseReceived,
    BuiltSubmissionPayload,
    ConversionResult,
)

log = logging.getLogger(__name__)
audit_log = logging.getLogger("taxgateway.audit")

UNEXPECTED_CONVERSION_FAILURE = "unexpected conversion failure"


class PassthroughContentConverter:
    """
    Description: Fallback converter used when no XML converter is wired in.
    Layer: Audit
    Input: raw envelope/body string
    Output: failed ConversionResult so callers degrade to raw payloads
    """

    def convert(self, raw: str) -> ConversionResult:
        return ConversionResult(ok=False, error="no content converter configured")


class LoggingAuditService:
    """Audit port that writes events to the taxgateway.audit logger."""

    async def emit_request_event(self, payload: Any) -> AuditResult:
        audit_log.info("MonthlyNilReturnRequest %s", json.dumps(payload, default=str))
        return AuditResult(ok=True)

    async def emit_response_event(self, status_label: str, payload: Any) -> AuditResult:
        audit_log.info("MonthlyNilReturnResponse status=%s %s", status_label, json.dumps(payload, default=str))
        return AuditResult(ok=True)


def request_audit_payload(converter: ContentConverter, payload: BuiltSubmissionPayload) -> Any:
    """
    Description: Convert the outgoing envelope for the request audit event.
    Layer: Audit
    Input: converter + built envelope
    Output: converted JSON, or {"error": ...} when conversion fails
    """
    try:
        res = converter.convert(payload.envelope)
    except Exception as e:
        log.warning("[audit] envelope conversion raised", exc_info=True)
        return {"error": str(e) or UNEXPECTED_CONVERSION_FAILURE}
    if res.ok and res.json_payload is not None:
        return res.json_payload
    if not res.ok and res.error:
        return {"error": res.error}
    return {"error": UNEXPECTED_CONVERSION_FAILURE}


def response_audit_payload(converter: ContentConverter, raw_body: str) -> Any:
    """Converted upstream body, or the raw string when it cannot be converted."""
    try:
        res = converter.convert(raw_body)
    except Exception:
        log.warning("[audit] response body conversion raised", exc_info=True)
        return raw_body
    if res.ok and res.json_payload is not None:
        return res.json_payload
    return raw_body


async def emit_request_safely(audit: AuditService, payload: Any) -> None:
    try:
        result = await audit.emit_request_event(payload)
    except Exception:
        log.warning("[audit] request event emission raised", exc_info=True)
        return
    if not result.ok:
        log.warning("[audit] request event rejected: %s", result.error)


async def emit_response_safely(audit: AuditService, event: AuditResponseReceived) -> None:
    try:
        result = await audit.emit_response_event(event.status_label, event.payload)
    except Exception:
        log.warning("[audit] response event emission raised (status=%s)", event.status_label, exc_info=True)
        return
    if not result.ok:
        log.warning("[audit] response event rejected (status=%s): %s", event.status_label, result.error)
