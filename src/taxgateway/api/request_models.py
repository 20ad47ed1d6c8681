from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel


_WIRE_CONFIG = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class CreateSubmissionRequest(BaseModel):
    """
    Description: Request model for POST /cis/submissions/create-and-track.
    Layer: API
    Input: instanceId + taxYear + taxMonth
    Output: validated create request forwarded to the submission service
    """
    model_config = _WIRE_CONFIG

    instance_id: str
    tax_year: int
    tax_month: int
    email_recipient: Optional[str] = None


class ChrisSubmissionRequest(BaseModel):
    """
    Description: Request model for POST /cis/submissions/{id}/submit-to-chris.
    Layer: API
    Input: nil monthly return answers
    Output: validated request handed to the envelope builder
    """
    model_config = _WIRE_CONFIG

    utr: str
    ao_reference: str
    information_correct: str
    inactivity: str
    month_year: str
    email: Optional[str] = None


class UpdateSubmissionRequest(BaseModel):
    """
    Description: Request model for POST /cis/submissions/{id}/update.
    Layer: API
    Input: submission record fields + new submittable status
    Output: validated update forwarded to the submission service
    """
    model_config = _WIRE_CONFIG

    instance_id: str
    tax_year: int
    tax_month: int
    submittable_status: str
    hmrc_mark_generated: Optional[str] = None
    hmrc_mark_gateway: Optional[str] = None
    accepted_time: Optional[str] = None
    gov_talk_error_code: Optional[str] = None
    gov_talk_error_type: Optional[str] = None
    gov_talk_error_message: Optional[str] = None
    email_recipient: Optional[str] = None


def field_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """Group pydantic errors by dotted wire path, e.g. {"instanceId": ["Field required"]}."""
    out: Dict[str, List[str]] = {}
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ())) or "body"
        out.setdefault(path, []).append(str(err.get("msg", "invalid")))
    return out


def body_error(message: str) -> Dict[str, Any]:
    return {"body": [message]}
