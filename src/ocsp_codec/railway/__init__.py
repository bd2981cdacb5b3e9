"""
Railway-Oriented Programming primitives used at the codec boundary.

    from ocsp_codec.railway import ErrorCode, Result

    result = parser.parse(der)
    if result.is_failure() and result.error().code is ErrorCode.RESPONSE_STATUS_ERROR:
        schedule_retry(result.error().response_status)
"""

from ocsp_codec.railway.assertions import ResultAssertions
from ocsp_codec.railway.failure import ErrorCode, FailureDescription
from ocsp_codec.railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]
