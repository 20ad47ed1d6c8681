from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors raised inside the submission gateway."""


class PollTokenError(GatewayError):
    """The poll URL could not be decoded into a timestamp."""

    def __init__(self, poll_url: str, reason: str) -> None:
        super().__init__(f"invalid poll url {poll_url!r}: {reason}")
        self.poll_url = poll_url
        self.reason = reason
