from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple

from fastapi.testclient import TestClient

from taxgateway.api.main import create_app
from taxgateway.api.submission_controller import SubmissionController
from taxgateway.config import Settings
from taxgateway.core.ports import (
    AuditResult,
    Authorized,
    AuthorizationOutcome,
    EnrolmentContext,
)
from taxgateway.services.submission_schema import (
    BuiltSubmissionPayload,
    ConversionResult,
    EnvelopeFlags,
    ResponseEndPoint,
    SubmissionOutcome,
    SubmissionStatus,
)

FIXED_NOW = datetime(2025, 9, 1, 10, 0, 0, tzinfo=timezone.utc)


def cis_enrolment(tax_office_number: str, tax_office_reference: str = "AB456") -> EnrolmentContext:
    return EnrolmentContext(
        {"HMRC-CIS-ORG": {"TaxOfficeNumber": tax_office_number, "TaxOfficeReference": tax_office_reference}}
    )


def make_outcome(status: SubmissionStatus, **overrides: Any) -> SubmissionOutcome:
    fields: dict = {
        "status": status,
        "raw_body": "<ack/>",
        "correlation_id": "CID123",
        "gateway_timestamp": None,
        "response_end_point": ResponseEndPoint(url="/poll", poll_interval_seconds=15),
    }
    fields.update(overrides)
    return SubmissionOutcome(**fields)


class FakeAuthorizer:
    def __init__(self, outcome: Optional[AuthorizationOutcome] = None) -> None:
        self.outcome = outcome or Authorized(cis_enrolment("754"))
        self.calls = 0

    async def authorize(self, request: Any) -> AuthorizationOutcome:
        self.calls += 1
        return self.outcome


class FakeSubmissionService:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any]] = []
        self.create_result: Any = "sub-999"
        self.submit_result: Any = make_outcome(SubmissionStatus.SUBMITTED)
        self.update_result: Any = None

    async def _answer(self, op: str, arg: Any, result: Any) -> Any:
        self.calls.append((op, arg))
        if isinstance(result, Exception):
            raise result
        return result

    async def create_submission(self, request: Any) -> str:
        return await self._answer("create", request, self.create_result)

    async def submit_to_chris(self, payload: BuiltSubmissionPayload) -> SubmissionOutcome:
        return await self._answer("submit", payload, self.submit_result)

    async def update_submission(self, request: Any) -> None:
        return await self._answer("update", request, self.update_result)


class FakeAuditService:
    def __init__(self, fail: bool = False) -> None:
        self.requests: List[Any] = []
        self.responses: List[Tuple[str, Any]] = []
        self.fail = fail

    async def emit_request_event(self, payload: Any) -> AuditResult:
        self.requests.append(payload)
        if self.fail:
            raise RuntimeError("audit down")
        return AuditResult(ok=True)

    async def emit_response_event(self, status_label: str, payload: Any) -> AuditResult:
        self.responses.append((status_label, payload))
        if self.fail:
            raise RuntimeError("audit down")
        return AuditResult(ok=True)

    @property
    def total_calls(self) -> int:
        return len(self.requests) + len(self.responses)


class FakeEnvelopeBuilder:
    def __init__(self) -> None:
        self.calls: List[Tuple[Any, str, EnvelopeFlags]] = []

    def build(self, request: Any, raw_request: Any, correlation_id: str, flags: EnvelopeFlags) -> BuiltSubmissionPayload:
        self.calls.append((request, correlation_id, flags))
        return BuiltSubmissionPayload(
            envelope=f"<GovTalkMessage><CorrelationID>{correlation_id}</CorrelationID></GovTalkMessage>",
            correlation_id=correlation_id,
            ir_mark="IRMARK-1",
        )


class FakeConverter:
    def __init__(self, convert: Optional[Callable[[str], ConversionResult]] = None) -> None:
        self._convert = convert or (lambda raw: ConversionResult(ok=True, json_payload={"xml": raw}))
        self.seen: List[str] = []

    def convert(self, raw: str) -> ConversionResult:
        self.seen.append(raw)
        return self._convert(raw)


class Gateway:
    """Controller + fakes bundle handed to HTTP tests."""

    def __init__(self, authorizer: Optional[FakeAuthorizer] = None, settings: Optional[Settings] = None) -> None:
        self.authorizer = authorizer or FakeAuthorizer()
        self.service = FakeSubmissionService()
        self.audit = FakeAuditService()
        self.builder = FakeEnvelopeBuilder()
        self.converter = FakeConverter()
        self.settings = settings or Settings()
        self.controller = SubmissionController(
            authorizer=self.authorizer,
            submission_service=self.service,
            audit_service=self.audit,
            envelope_builder=self.builder,
            converter=self.converter,
            settings=self.settings,
            clock=lambda: FIXED_NOW,
        )

    def client(self) -> TestClient:
        return TestClient(create_app(self.controller, self.settings))
