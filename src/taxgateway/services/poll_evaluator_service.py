from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit

from taxgateway.core.errors import PollTokenError
from taxgateway.services.result_renderer_service import Clock, utc_now
from taxgateway.services.submission_schema import PollStatus

log = logging.getLogger(__name__)

MATURITY_WINDOW = timedelta(seconds=15)

# Simulated gateway outcomes keyed by tax office number.
SIMULATED_OUTCOMES: Dict[str, PollStatus] = {
    "754": PollStatus.SUBMITTED,
    "755": PollStatus.FATAL_ERROR,
    "756": PollStatus.DEPARTMENTAL_ERROR,
}

_FRACTION = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class PollDecision:
    status: PollStatus
    body: Dict[str, Any]
    status_code: int = 200


def _parse_instant(value: str) -> datetime:
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def decode_poll_timestamp(encoded_poll_url: str) -> datetime:
    """
    Description: Recover the instant embedded in a poll URL's `timestamp` query parameter.
    Layer: Domain
    Input: URL-encoded poll URL
    Output: timezone-aware datetime; raises PollTokenError when it cannot be read
    """
    decoded = unquote(encoded_poll_url or "")
    query = urlsplit(decoded).query
    raw: Optional[str] = None
    for part in query.split("&"):
        key, sep, value = part.partition("=")
        if sep and key == "timestamp":
            raw = value
            break
    if not raw:
        raise PollTokenError(encoded_poll_url, "missing timestamp parameter")
    try:
        return _parse_instant(raw)
    except ValueError as e:
        raise PollTokenError(encoded_poll_url, f"unreadable timestamp {raw!r}") from e


def evaluate_poll(
    encoded_poll_url: str,
    correlation_id: str,
    tax_office_number: Optional[str],
    *,
    clock: Clock = utc_now,
) -> PollDecision:
    """
    Description: Decide the poll status for a previously accepted submission.
    Layer: Domain
    Input: encoded poll URL + correlation id + caller's tax office number
    Output: PollDecision (always HTTP 200); PENDING echoes the poll URL verbatim
    """
    timestamp = decode_poll_timestamp(encoded_poll_url)
    matured = clock() >= timestamp + MATURITY_WINDOW

    status = SIMULATED_OUTCOMES.get(tax_office_number or "") if matured else None
    log.debug("[poll] correlationId=%s matured=%s status=%s", correlation_id, matured, status)
    if status is None:
        return PollDecision(
            status=PollStatus.PENDING,
            body={"status": PollStatus.PENDING.value, "pollUrl": encoded_poll_url},
        )
    return PollDecision(status=status, body={"status": status.value})
