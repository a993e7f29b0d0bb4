"""
Observability Errors

Failures raised by the instrumentation layer and the trace publisher.
"""

from typing import Optional

from observability.trace import Trace


class InstrumentedCallError(Exception):
    """
    The wrapped call failed.

    Carries the trace recorded for the failed attempt so callers can still
    inspect what was observed. The original exception is chained as __cause__.
    """

    def __init__(self, trace: Trace, cause: BaseException):
        super().__init__(f"Instrumented call failed: {cause}")
        self.trace = trace
        self.cause = cause


class TraceForwardError(Exception):
    """A single trace forward attempt failed (transport error or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
