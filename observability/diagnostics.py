"""
Response Diagnostics

Advisory classification of an AI answer against fixed phrase tables.
Attaches a hint to the result; NEVER changes success/failure status.

Patterns are evaluated in order and the first match wins. Connectivity
failures are listed before "no context" phrases.
"""

import re
from enum import Enum
from typing import Optional, Pattern, Tuple


class ResponseDiagnostic(str, Enum):
    """What the answer text suggests about the context pipeline."""
    OK = "ok"
    NO_CONTEXT = "no_context"
    CONNECTION_FAILURE = "connection_failure"


DIAGNOSTIC_PATTERNS: Tuple[Tuple[Pattern[str], ResponseDiagnostic], ...] = (
    # Literal backend / connectivity failures leaking into the answer
    (re.compile(r"failed to obtain .*connection"), ResponseDiagnostic.CONNECTION_FAILURE),
    (re.compile(r"jdbc connection"), ResponseDiagnostic.CONNECTION_FAILURE),
    (re.compile(r"database context indicates an error"), ResponseDiagnostic.CONNECTION_FAILURE),
    (re.compile(r"connection refused"), ResponseDiagnostic.CONNECTION_FAILURE),
    (re.compile(r"connection tim(ed )?out"), ResponseDiagnostic.CONNECTION_FAILURE),
    # The model answered as if it had no data at all
    (re.compile(r"i do not have access"), ResponseDiagnostic.NO_CONTEXT),
    (re.compile(r"i don't have access"), ResponseDiagnostic.NO_CONTEXT),
    (re.compile(r"i cannot access"), ResponseDiagnostic.NO_CONTEXT),
    (re.compile(r"i need to know"), ResponseDiagnostic.NO_CONTEXT),
    (re.compile(r"please provide me with information"), ResponseDiagnostic.NO_CONTEXT),
    (re.compile(r"what kind of data"), ResponseDiagnostic.NO_CONTEXT),
    (re.compile(r"what database"), ResponseDiagnostic.NO_CONTEXT),
)

DIAGNOSTIC_HINTS = {
    ResponseDiagnostic.CONNECTION_FAILURE: (
        "The answer mentions a data-layer connection failure. "
        "Check the data source configuration and that the database is reachable."
    ),
    ResponseDiagnostic.NO_CONTEXT: (
        "The answer reads as if no data context was supplied. "
        "Check that the data source returned rows for this prompt."
    ),
}


def classify_response(text: Optional[str]) -> ResponseDiagnostic:
    """Classify answer text; OK when no pattern matches."""
    lowered = (text or "").lower()
    for pattern, diagnostic in DIAGNOSTIC_PATTERNS:
        if pattern.search(lowered):
            return diagnostic
    return ResponseDiagnostic.OK


def diagnostic_hint(diagnostic: ResponseDiagnostic) -> Optional[str]:
    return DIAGNOSTIC_HINTS.get(diagnostic)
