"""
Instrumentation Wrapper

Wraps a single outbound HTTP call, measures it, and forwards a Trace.

FLOW:
resolve prompt → start clock → call → (success) read body, estimate, trace
                                    → (failure) error trace, re-raise with trace
Either way: exactly one Trace, exactly one forward attempt.

DESIGN RULES:
- Forwarding is fire-and-forget; the caller never waits on it
- The caller still receives a readable response
- Failures are re-signaled as InstrumentedCallError carrying the trace
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

import httpx

from cost.estimator import estimate
from observability.errors import InstrumentedCallError
from observability.http_client import client_scope
from observability.publisher import TracePublisher
from observability.trace import DEFAULT_PROVIDER, Trace, TraceMetadata


logger = logging.getLogger(__name__)


RequestBody = Union[str, bytes, Mapping[str, Any], None]


@dataclass(frozen=True)
class RequestInfo:
    """Shape of the call being instrumented (used for prompt and metadata)."""

    url: str
    method: str = "GET"
    body: RequestBody = None


@dataclass(frozen=True)
class InstrumentedResult:
    """The untouched response plus the trace recorded for it."""

    response: httpx.Response
    trace: Trace


def resolve_prompt(metadata: Mapping[str, Any], body: RequestBody) -> str:
    """
    Effective prompt for a call.

    metadata['prompt'] wins; otherwise the 'prompt' field of a JSON body;
    otherwise "". Never raises.
    """
    prompt = metadata.get("prompt")
    if prompt:
        return str(prompt)

    parsed: Any = body
    if isinstance(body, (str, bytes, bytearray)):
        try:
            parsed = json.loads(body)
        except (ValueError, TypeError):
            return ""

    if isinstance(parsed, Mapping):
        value = parsed.get("prompt")
        return str(value) if value else ""

    return ""


def describe_error(error: BaseException) -> str:
    """Short error text stored in a failure trace's response field."""
    message = str(error)
    if message:
        return f"Error: {type(error).__name__}: {message}"
    return f"Error: {type(error).__name__}"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class Instrumentor:
    """
    Measures outbound calls and forwards one Trace per attempt.

    Usage:
        result = await instrumentor.track_fetch(
            "https://api.openai.com/v1/chat/completions",
            method="POST",
            json=payload,
            metadata={"provider": "openai", "model": "gpt-4o"},
        )
        result.response.json()   # still readable
        result.trace.latency_ms
    """

    def __init__(
        self,
        publisher: TracePublisher,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        default_provider: str = DEFAULT_PROVIDER,
    ):
        self._publisher = publisher
        self._client = client
        self._timeout = timeout
        self._default_provider = default_provider

    async def track_fetch(
        self,
        url: str,
        method: str = "GET",
        *,
        json: Any = None,
        content: Union[str, bytes, None] = None,
        headers: Optional[Dict[str, str]] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> InstrumentedResult:
        """Perform an HTTP request through httpx and instrument it."""
        method = method.upper()
        info = RequestInfo(url=url, method=method, body=json if json is not None else content)

        async def call() -> httpx.Response:
            async with client_scope(self._client, self._timeout) as client:
                response = await client.request(
                    method, url, json=json, content=content, headers=headers
                )
                # Buffer before a temporary client closes the connection
                await response.aread()
                return response

        return await self.instrument(call, info, metadata)

    async def instrument(
        self,
        call: Callable[[], Awaitable[httpx.Response]],
        request_info: RequestInfo,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> InstrumentedResult:
        """
        Instrument an arbitrary awaitable HTTP call.

        Raises:
            InstrumentedCallError: the call raised; .trace holds the failure trace
            asyncio.CancelledError: re-raised unchanged after its failure trace is forwarded
        """
        caller_metadata = dict(metadata or {})
        prompt = resolve_prompt(caller_metadata, request_info.body)
        provider = str(caller_metadata.get("provider") or self._default_provider)
        model = caller_metadata.get("model")

        started = time.monotonic()

        try:
            response = await call()
            # Cached by httpx: the caller can read the body again
            await response.aread()
            response_text = response.text
        except asyncio.CancelledError as e:
            # Still one trace per attempt; cancellation itself propagates unchanged
            self._record_failure(e, started, prompt, provider, request_info, caller_metadata)
            raise
        except Exception as e:
            trace = self._record_failure(e, started, prompt, provider, request_info, caller_metadata)
            raise InstrumentedCallError(trace=trace, cause=e) from e

        latency_ms = _elapsed_ms(started)
        metrics = estimate(prompt, response_text, model=model)

        trace = Trace.create(
            prompt=prompt,
            response=response_text,
            tokens_used=metrics.tokens_used,
            cost_usd=metrics.cost_usd,
            latency_ms=latency_ms,
            provider=provider,
            metadata=TraceMetadata.merge(
                url=request_info.url,
                method=request_info.method,
                status_code=response.status_code,
                caller_metadata=caller_metadata,
            ),
        )
        logger.info(
            f"[{trace.trace_id}] {request_info.method} {request_info.url} -> "
            f"{response.status_code} in {latency_ms}ms (~{metrics.tokens_used} tokens)"
        )

        self._publisher.forward(trace)
        return InstrumentedResult(response=response, trace=trace)

    def _record_failure(
        self,
        error: BaseException,
        started: float,
        prompt: str,
        provider: str,
        request_info: RequestInfo,
        caller_metadata: Mapping[str, Any],
    ) -> Trace:
        """Build and forward the failure trace for an attempt that did not complete."""
        trace = Trace.create(
            prompt=prompt,
            response=describe_error(error),
            tokens_used=0,
            cost_usd=0.0,
            latency_ms=_elapsed_ms(started),
            provider=provider or "unknown",
            metadata=TraceMetadata.merge(
                url=request_info.url,
                method=request_info.method,
                caller_metadata=caller_metadata,
                error=True,
                error_message=str(error) or type(error).__name__,
            ),
        )
        logger.warning(
            f"[{trace.trace_id}] {request_info.method} {request_info.url} failed "
            f"after {trace.latency_ms}ms: {error!r}"
        )
        self._publisher.forward(trace)
        return trace
