"""
Orchestration Errors

Only ProviderCallError is terminal for a request. CrossValidationError is
caught by the orchestrator and degrades the response.
"""

from typing import Optional

from observability.trace import Trace


class ProviderCallError(Exception):
    """
    The AI provider call failed, so no answer exists.

    Carries whatever was assembled before the failure: the failure trace
    and the context that had been resolved.
    """

    def __init__(self, message: str, trace: Trace, context: Optional[str] = None):
        super().__init__(message)
        self.trace = trace
        self.context = context


class CrossValidationError(Exception):
    """The cross-validation service failed or returned an unusable verdict."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
