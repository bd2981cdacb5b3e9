"""
Error taxonomy — exceptions raised inside the codec, and the boundary that
turns them into Result failures.

  ParseError         malformed DER, trailing data, unsupported OID,
                     critical extension, ambiguous response       → MALFORMED_ERROR
  ResponseError      responder answered with a non-success status → RESPONSE_STATUS_ERROR
  VerificationError  bad signature, unusable algorithm/key/hash   → VALIDATION_ERROR

asn1crypto reports decode problems as ValueError/TypeError; those are
classified as malformed input too. Anything else is a TECHNICAL_ERROR.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import structlog

from ocsp_codec.domain.models import ResponseStatus
from ocsp_codec.railway import ErrorCode, Result

T = TypeVar("T")

log = structlog.get_logger()


class OcspError(Exception):
    """Base class for all codec errors."""

    error_code = ErrorCode.TECHNICAL_ERROR


class ParseError(OcspError):
    """The input is not a well-formed OCSP message this library accepts."""

    error_code = ErrorCode.MALFORMED_ERROR


class ResponseError(OcspError):
    """
    The responder returned an error status instead of a basic response.

    This is not a parse failure: the bytes were fine, the responder said no.
    """

    error_code = ErrorCode.RESPONSE_STATUS_ERROR

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"ocsp: error from server: {ResponseStatus.describe(status)}")


class VerificationError(OcspError):
    """A signature did not verify, or an algorithm cannot be used."""

    error_code = ErrorCode.VALIDATION_ERROR


def capture(computation: Callable[[], T], error_message: str) -> Result[T]:
    """
    Run a computation that may raise and put its outcome on the railway.

    Codec errors keep their own message; raw decoder errors are prefixed
    with `error_message` so the caller sees what was being decoded.
    """
    try:
        return Result.success(computation())
    except ResponseError as e:
        log.info("ocsp.response.error_status", status=e.status)
        return Result.failure(e.error_code, str(e), e, response_status=e.status)
    except OcspError as e:
        log.debug("ocsp.result.failure", code=e.error_code.value, reason=str(e))
        return Result.failure(e.error_code, str(e), e)
    except (ValueError, TypeError) as e:
        log.debug("ocsp.result.failure", code=ErrorCode.MALFORMED_ERROR.value, reason=str(e))
        return Result.failure(ErrorCode.MALFORMED_ERROR, f"{error_message}: {e}", e)
    except Exception as e:
        log.warning("ocsp.result.failure", code=ErrorCode.TECHNICAL_ERROR.value, reason=str(e))
        return Result.failure(ErrorCode.TECHNICAL_ERROR, f"{error_message}: {e}", e)
