"""
Failure description — structured error information for the failure track.

OCSP callers have to tell apart three situations that all look like
"the check did not produce a status":

  - the bytes are garbage (MALFORMED_ERROR)
  - the responder answered with an error status (RESPONSE_STATUS_ERROR)
  - the bytes are fine but something does not verify (VALIDATION_ERROR)

Retry policy (e.g. honouring "try later") lives with the caller, so the
code and the numeric responder status travel on the failure track.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """Structured error codes for the failure track."""

    MALFORMED_ERROR = "MALFORMED_ERROR"
    """DER decode failure, trailing data, unsupported OID, bad CHOICE tag."""

    RESPONSE_STATUS_ERROR = "RESPONSE_STATUS_ERROR"
    """Well-formed OCSPResponse whose responseStatus is not successful."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Signature does not verify, or an algorithm/key/hash cannot be used."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected failure in a collaborator."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    `response_status` is only set for RESPONSE_STATUS_ERROR and holds the
    raw OCSPResponseStatus value sent by the responder.

    >>> desc = FailureDescription(ErrorCode.MALFORMED_ERROR, "trailing data in OCSP request")
    >>> desc.code
    <ErrorCode.MALFORMED_ERROR: 'MALFORMED_ERROR'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    response_status: int | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def full_stack_trace(self) -> str:
        """Full stack trace string including the message and exception chain."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )
        return f"{self.message}\n{tb}"
