"""
Cross-Validation Client

Synchronous (awaited) call to the hallucination / confidence service.
The scoring algorithm is the remote service's concern; this module only
sends the facts and parses the verdict.
"""

import logging
from typing import Optional

import httpx

from observability.http_client import client_scope
from orchestration.errors import CrossValidationError
from schemas.query import CrossValidationRequest, CrossValidationVerdict


logger = logging.getLogger(__name__)


DEFAULT_CROSS_VALIDATION_ENDPOINT = "http://localhost:8080/api/traces/cross-validate"
DEFAULT_TIMEOUT_SECONDS = 30.0


class CrossValidationClient:
    """POSTs prompt/response/metrics and returns the parsed verdict."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_CROSS_VALIDATION_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._endpoint = endpoint
        self._timeout = timeout
        self._client = client

    async def validate(self, request: CrossValidationRequest) -> CrossValidationVerdict:
        """
        Obtain a verdict for one answer.

        Raises:
            CrossValidationError: transport failure, non-2xx status or bad payload
        """
        try:
            async with client_scope(self._client, self._timeout) as client:
                response = await client.post(
                    self._endpoint,
                    json=request.model_dump(by_alias=True),
                    headers={
                        "Content-Type": "application/json",
                        "X-API-Key": self._api_key,
                    },
                    timeout=self._timeout,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CrossValidationError(f"Cross-validation request failed: {e}") from e

        if response.is_error:
            raise CrossValidationError(
                f"Cross-validation service returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return CrossValidationVerdict.model_validate(response.json())
        except ValueError as e:
            raise CrossValidationError(f"Invalid cross-validation verdict: {e}") from e
