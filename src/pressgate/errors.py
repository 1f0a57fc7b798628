"""Error taxonomy for Pressgate.

- ValidationError: malformed input to the management or webhook surface
- FetchError: an outbound call failed; carries the attempt log
  - TransientNetworkError: timeout or connection failure (retryable)
  - UpstreamError: the backend answered with an error status

A cache miss is not an error: caches return None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pressgate.fetch.client import FetchAttempt


class PressgateError(Exception):
    """Base exception for Pressgate."""


class ValidationError(PressgateError):
    """Malformed input to a management or webhook endpoint. Never retried."""

    def __init__(self, text: str, field: str | None = None):
        self.text = text
        self.field = field
        super().__init__(text)


class FetchError(PressgateError):
    """An outbound call to a named backend failed."""

    retryable: bool = False

    def __init__(
        self,
        target: str,
        message: str,
        attempts: list[FetchAttempt] | None = None,
    ):
        self.target = target
        self.message = message
        self.attempts: list[FetchAttempt] = list(attempts or [])
        super().__init__(f"{target}: {message}")


class TransientNetworkError(FetchError):
    """Timeout or connection failure."""

    retryable = True

    def __init__(
        self,
        target: str,
        message: str,
        attempts: list[FetchAttempt] | None = None,
        timed_out: bool = False,
    ):
        self.timed_out = timed_out
        super().__init__(target, message, attempts)


class UpstreamError(FetchError):
    """Backend returned an error status or an unusable body.

    Retryable only for 5xx and 429; everything else is terminal.
    """

    def __init__(
        self,
        target: str,
        message: str,
        status_code: int | None = None,
        attempts: list[FetchAttempt] | None = None,
    ):
        self.status_code = status_code
        super().__init__(target, message, attempts)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        if self.status_code is None:
            return False
        return self.status_code >= 500 or self.status_code == 429
