from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from fastapi import BackgroundTasks, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError

from taxgateway.api.request_models import (
    ChrisSubmissionRequest,
    CreateSubmissionRequest,
    UpdateSubmissionRequest,
    body_error,
    field_errors,
)
from taxgateway.config import Settings
from taxgateway.core.errors import PollTokenError
from taxgateway.core.ports import (
    AuditService,
    AuthorizationGate,
    Authorized,
    ContentConverter,
    EnvelopeBuilder,
    SubmissionService,
    UpstreamResult,
)
from taxgateway.services.audit_service import (
    LoggingAuditService,
    PassthroughContentConverter,
    emit_request_safely,
    emit_response_safely,
    request_audit_payload,
)
from taxgateway.services.poll_evaluator_service import evaluate_poll
from taxgateway.services.result_renderer_service import Clock, render_submission_response, utc_now
from taxgateway.services.submission_schema import AuditResponseReceived, SubmissionStatus

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_BAD_GATEWAY = 502


def new_correlation_id() -> str:
    """32 upper-case hex characters (a uuid4 without separators)."""
    return uuid.uuid4().hex.upper()


async def call_upstream(failure_message: str, fn: Callable[..., Awaitable[Any]], *args: Any) -> UpstreamResult:
    """Await an upstream port call, turning any failure into a logged UpstreamResult."""
    try:
        return UpstreamResult(ok=True, data=await fn(*args))
    except Exception:
        log.error(failure_message, exc_info=True)
        return UpstreamResult(ok=False)


class SubmissionController:
    """
    Description: HTTP orchestration for CIS monthly nil return submissions.
    Layer: API
    Input: authorised JSON requests
    Output: JSON responses + audit events (request event before the upstream call,
            response event as a background task)

    Notes:
      - Authorization runs before the body is read; a rejection touches nothing else.
      - Upstream failures never leak exception detail into response bodies.
      - Without an injected audit service or converter, events go to the
        taxgateway.audit logger and payloads degrade to raw strings.
    """

    def __init__(
        self,
        *,
        authorizer: AuthorizationGate,
        submission_service: SubmissionService,
        envelope_builder: EnvelopeBuilder,
        audit_service: Optional[AuditService] = None,
        converter: Optional[ContentConverter] = None,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self.authorizer = authorizer
        self.submissions = submission_service
        self.audit = audit_service or LoggingAuditService()
        self.envelope_builder = envelope_builder
        self.converter = converter or PassthroughContentConverter()
        self.s = settings
        self.clock = clock

    async def _authorize(self, request: Request) -> Tuple[Optional[Authorized], Optional[Response]]:
        outcome = await self.authorizer.authorize(request)
        if isinstance(outcome, Authorized):
            return outcome, None
        log.info("[auth] rejected %s %s: %s", request.method, request.url.path, outcome.reason)
        return None, JSONResponse({"message": "unauthorised"}, status_code=HTTP_UNAUTHORIZED)

    async def _parse(self, request: Request, model: Type[M]) -> Tuple[Optional[M], Optional[dict]]:
        try:
            body = await request.json()
        except ValueError:
            return None, body_error("Invalid JSON body")
        try:
            return model.model_validate(body), None
        except ValidationError as e:
            return None, field_errors(e)

    # --------------------
    # Operations
    # --------------------
    async def create_submission(self, request: Request) -> Response:
        _, denied = await self._authorize(request)
        if denied is not None:
            return denied

        csr, errors = await self._parse(request, CreateSubmissionRequest)
        if csr is None:
            return JSONResponse(errors, status_code=HTTP_BAD_REQUEST)

        res = await call_upstream("[create] formp-proxy create failed", self.submissions.create_submission, csr)
        if not res.ok:
            return JSONResponse({"message": "create-submission-failed"}, status_code=HTTP_BAD_GATEWAY)
        return JSONResponse({"submissionId": res.data}, status_code=HTTP_CREATED)

    async def submit_to_chris(self, submission_id: str, request: Request) -> Response:
        _, denied = await self._authorize(request)
        if denied is not None:
            return denied

        csr, errors = await self._parse(request, ChrisSubmissionRequest)
        if csr is None:
            return JSONResponse({"message": errors}, status_code=HTTP_BAD_REQUEST)

        log.info("Submitting Nil Monthly Return to ChRIS for UTR=%s", csr.utr)
        correlation_id = new_correlation_id()
        payload = self.envelope_builder.build(csr, request, correlation_id, self.s.envelope_flags())

        await emit_request_safely(self.audit, request_audit_payload(self.converter, payload))
        tasks = BackgroundTasks()

        res = await call_upstream("[submitToChris] upstream failure", self.submissions.submit_to_chris, payload)
        if not res.ok:
            fatal = {
                "submissionId": submission_id,
                "status": SubmissionStatus.FATAL_ERROR.value,
                "hmrcMarkGenerated": payload.ir_mark,
                "error": "upstream-failure",
            }
            event = AuditResponseReceived(status_label=str(HTTP_BAD_GATEWAY), payload=fatal)
            tasks.add_task(emit_response_safely, self.audit, event)
            return JSONResponse(fatal, status_code=HTTP_BAD_GATEWAY, background=tasks)

        rendered = render_submission_response(
            submission_id, payload.ir_mark, res.data, converter=self.converter, clock=self.clock
        )
        tasks.add_task(emit_response_safely, self.audit, rendered.audit_event)
        return JSONResponse(rendered.body, status_code=rendered.status_code, background=tasks)

    async def update_submission(self, submission_id: str, request: Request) -> Response:
        _, denied = await self._authorize(request)
        if denied is not None:
            return denied

        upd, errors = await self._parse(request, UpdateSubmissionRequest)
        if upd is None:
            return JSONResponse(errors, status_code=HTTP_BAD_REQUEST)

        res = await call_upstream("[updateSubmission] formp-proxy update failed", self.submissions.update_submission, upd)
        if not res.ok:
            return JSONResponse(
                {"submissionId": submission_id, "message": "update-submission-failed"},
                status_code=HTTP_BAD_GATEWAY,
            )
        return Response(status_code=HTTP_NO_CONTENT)

    async def poll_submission(self, poll_url: str, correlation_id: str, request: Request) -> Response:
        auth, denied = await self._authorize(request)
        if denied is not None:
            return denied

        try:
            decision = evaluate_poll(
                poll_url, correlation_id, auth.enrolments.tax_office_number(), clock=self.clock
            )
        except PollTokenError as e:
            log.warning("[poll] %s", e)
            return JSONResponse({"message": "invalid-poll-url"}, status_code=HTTP_BAD_REQUEST)
        return JSONResponse(decision.body, status_code=decision.status_code)
