from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Union

from fastapi import Request

from taxgateway.api.request_models import (
    ChrisSubmissionRequest,
    CreateSubmissionRequest,
    UpdateSubmissionRequest,
)
from taxgateway.services.submission_schema import (
    BuiltSubmissionPayload,
    ConversionResult,
    EnvelopeFlags,
    SubmissionOutcome,
)


CIS_ENROLMENT_KEY = "HMRC-CIS-ORG"
TAX_OFFICE_NUMBER = "TaxOfficeNumber"


@dataclass
class UpstreamResult:
    ok: bool
    data: Any = None


@dataclass
class AuditResult:
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class EnrolmentContext:
    """Enrolments granted to the caller: enrolment key -> identifier name -> value."""

    enrolments: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def get_identifier(self, enrolment_key: str, identifier: str) -> Optional[str]:
        return self.enrolments.get(enrolment_key, {}).get(identifier)

    def tax_office_number(self) -> Optional[str]:
        return self.get_identifier(CIS_ENROLMENT_KEY, TAX_OFFICE_NUMBER)


@dataclass(frozen=True)
class Authorized:
    enrolments: EnrolmentContext = field(default_factory=EnrolmentContext)


@dataclass(frozen=True)
class Unauthorized:
    reason: str = "unauthorised"


AuthorizationOutcome = Union[Authorized, Unauthorized]


class AuthorizationGate(Protocol):
    """Decides whether a request may reach the submission operations."""

    async def authorize(self, request: Request) -> AuthorizationOutcome: ...


class SubmissionService(Protocol):
    """Upstream system of record. Any method may raise on failure."""

    async def create_submission(self, request: CreateSubmissionRequest) -> str: ...

    async def submit_to_chris(self, payload: BuiltSubmissionPayload) -> SubmissionOutcome: ...

    async def update_submission(self, request: UpdateSubmissionRequest) -> None: ...


class AuditService(Protocol):
    async def emit_request_event(self, payload: Any) -> AuditResult: ...

    async def emit_response_event(self, status_label: str, payload: Any) -> AuditResult: ...


class EnvelopeBuilder(Protocol):
    def build(
        self,
        request: ChrisSubmissionRequest,
        raw_request: Request,
        correlation_id: str,
        flags: EnvelopeFlags,
    ) -> BuiltSubmissionPayload: ...


class ContentConverter(Protocol):
    def convert(self, raw: str) -> ConversionResult: ...
