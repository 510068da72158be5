from __future__ import annotations

from typing import Optional

MAX_BODY_LENGTH = 512


class AmplifiRouterException(Exception):
    """Base error for everything that can go wrong during a poll cycle."""

    def __init__(self, message: str, stage: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.message = message
        self.stage = stage
        self.status_code = status_code
        self.body = body[:MAX_BODY_LENGTH] if body else body
        super().__init__(str(self))

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.status_code is not None:
            text += f" (status {self.status_code})"
        if self.body:
            text += f": {self.body}"
        return text


class AuthenticationException(AmplifiRouterException):
    """Login was rejected or a session token could not be obtained."""


class TransportException(AmplifiRouterException):
    """Connection failure or timeout talking to the router."""


class StatusException(AmplifiRouterException):
    """Router answered with an unexpected HTTP status."""


class ParseException(AmplifiRouterException):
    """Malformed HTML/JSON or an expected token is missing."""
