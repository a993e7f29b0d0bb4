# Observability Package
from observability.trace import Trace, TraceMetadata, MAX_PROMPT_LENGTH, MAX_RESPONSE_LENGTH
from observability.errors import InstrumentedCallError, TraceForwardError
from observability.publisher import PublisherConfig, TracePublisher
from observability.instrumentation import Instrumentor, InstrumentedResult, RequestInfo
from observability.diagnostics import ResponseDiagnostic, classify_response

__all__ = [
    "Trace",
    "TraceMetadata",
    "MAX_PROMPT_LENGTH",
    "MAX_RESPONSE_LENGTH",
    "InstrumentedCallError",
    "TraceForwardError",
    "PublisherConfig",
    "TracePublisher",
    "Instrumentor",
    "InstrumentedResult",
    "RequestInfo",
    "ResponseDiagnostic",
    "classify_response",
]
