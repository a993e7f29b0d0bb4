"""
Query Orchestrator

The single-direction flow controller for context-augmented queries.

FLOW:
Request → Context Router → Prompt Augmenter → Provider → Metric Estimator
        → Trace (fire-and-forget) → Cross-Validation (awaited, bounded) → Response

FAILURE PARTITIONING (NON-NEGOTIABLE):
1. Context retrieval failures degrade the context text, never the request
2. Provider failure is terminal: ProviderCallError carries the trace
3. Trace forwarding never blocks and never fails the request
4. Cross-validation failure/timeout leaves verdict fields unset
5. Diagnostics are advisory and never change success
6. Nothing is retried
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

from cost.estimator import estimate
from observability.diagnostics import classify_response, diagnostic_hint
from observability.instrumentation import describe_error
from observability.publisher import PublisherConfig, TracePublisher
from observability.trace import Trace, TraceMetadata
from orchestration.cross_validation import CrossValidationClient
from orchestration.errors import CrossValidationError, ProviderCallError
from retrieval.context_router import ContextRouter
from retrieval.prompt_augmenter import augment
from schemas.query import (
    CrossValidationRequest,
    CrossValidationVerdict,
    QueryWithContextRequest,
    QueryWithContextResponse,
)


logger = logging.getLogger(__name__)


QUERY_ENDPOINT = "/v1/query-with-context"


class ChatModelProvider(Protocol):
    """What the orchestrator needs from an AI provider."""

    @property
    def name(self) -> str:
        ...

    @property
    def endpoint(self) -> str:
        ...

    @property
    def default_model(self) -> str:
        ...

    async def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        ...


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Explicit configuration for one orchestrator instance.

    Built once per process from Settings and passed in at construction.
    """

    api_key: str
    trace_endpoint: str
    cross_validation_endpoint: str
    tracing_enabled: bool = True
    cross_validation_timeout_s: float = 30.0
    trace_timeout_ms: int = 5000


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class QueryOrchestrator:
    """
    Entry point for executing a context-augmented query.

    This is the glue, not the brain. Context selection, pricing and
    hallucination scoring all live in their own components.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        context_router: ContextRouter,
        provider: ChatModelProvider,
        publisher: Optional[TracePublisher] = None,
        cross_validator: Optional[CrossValidationClient] = None,
    ):
        """
        Initialize the orchestrator with injected dependencies.

        Args:
            config: Endpoints, credential, tracing flag and timeouts
            context_router: Resolves prompt → context text
            provider: AI provider adapter
            publisher: Trace publisher (built from config if omitted)
            cross_validator: Cross-validation client (built from config if omitted)
        """
        self._config = config
        self._router = context_router
        self._provider = provider
        self._publisher = publisher or TracePublisher(
            PublisherConfig(
                api_key=config.api_key,
                endpoint=config.trace_endpoint,
                enabled=config.tracing_enabled,
                timeout_ms=config.trace_timeout_ms,
            )
        )
        self._cross_validator = cross_validator or CrossValidationClient(
            api_key=config.api_key,
            endpoint=config.cross_validation_endpoint,
            timeout=config.cross_validation_timeout_s,
        )

    @property
    def publisher(self) -> TracePublisher:
        return self._publisher

    async def execute(self, request: QueryWithContextRequest) -> QueryWithContextResponse:
        """
        Execute the complete query flow.

        Returns:
            QueryWithContextResponse with answer, trace metrics and (if available) verdict

        Raises:
            ProviderCallError: the provider call failed; no answer could be produced
        """
        data_source_id = request.data_source_id

        # =====================================================
        # STEP 1: CONTEXT (degrades, never aborts)
        # =====================================================
        context = await asyncio.to_thread(
            self._router.resolve_context, request.prompt, data_source_id
        )
        logger.info(f"Resolved context for '{data_source_id}' ({len(context)} chars)")

        # =====================================================
        # STEP 2: AUGMENTATION (pure)
        # =====================================================
        augmented_prompt = augment(request.prompt, context)

        # =====================================================
        # STEP 3: PROVIDER CALL (terminal on failure)
        # =====================================================
        model = request.model or self._provider.default_model
        caller_metadata = {
            "endpoint": QUERY_ENDPOINT,
            "dataSourceId": data_source_id,
            "model": model,
            "temperature": request.temperature,
            "maxTokens": request.max_tokens,
        }

        started = time.monotonic()
        try:
            answer, provider_metadata = await self._provider.generate(
                augmented_prompt,
                model=model,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except Exception as e:
            trace = Trace.create(
                prompt=augmented_prompt,
                response=describe_error(e),
                tokens_used=0,
                cost_usd=0.0,
                latency_ms=_elapsed_ms(started),
                provider=self._provider.name or "unknown",
                metadata=TraceMetadata.merge(
                    url=self._provider.endpoint,
                    method="POST",
                    caller_metadata=caller_metadata,
                    error=True,
                    error_message=str(e) or type(e).__name__,
                ),
            )
            logger.error(f"[{trace.trace_id}] Provider call failed after {trace.latency_ms}ms: {e}")
            self._forward(trace)
            raise ProviderCallError(f"Provider call failed: {e}", trace=trace, context=context) from e

        latency_ms = _elapsed_ms(started)
        provider_name = provider_metadata.get("provider") or self._provider.name

        # =====================================================
        # STEP 4: METRICS + TRACE (fire-and-forget)
        # =====================================================
        metrics = estimate(augmented_prompt, answer, model=model)
        trace = Trace.create(
            prompt=augmented_prompt,
            response=answer,
            tokens_used=metrics.tokens_used,
            cost_usd=metrics.cost_usd,
            latency_ms=latency_ms,
            provider=provider_name,
            metadata=TraceMetadata.merge(
                url=self._provider.endpoint,
                method="POST",
                status_code=200,
                caller_metadata=caller_metadata,
            ),
        )
        logger.info(
            f"[{trace.trace_id}] Provider answered in {latency_ms}ms "
            f"(~{metrics.tokens_used} tokens, ~${metrics.cost_usd:.6f})"
        )
        self._forward(trace)

        # =====================================================
        # STEP 5: CROSS-VALIDATION (awaited, bounded, degrades)
        # =====================================================
        verdict = await self._cross_validate(request, answer, trace)

        # =====================================================
        # STEP 6: ASSEMBLY (diagnostics are advisory)
        # =====================================================
        diagnostic = classify_response(answer)
        response = QueryWithContextResponse(
            response=answer,
            success=True,
            context=context,
            trace_id=trace.trace_id,
            tokens_used=trace.tokens_used,
            cost_usd=trace.cost_usd,
            latency_ms=trace.latency_ms,
            provider=trace.provider,
            diagnostic=diagnostic,
            diagnostic_hint=diagnostic_hint(diagnostic),
            verification_available=verdict is not None,
        )
        if verdict is not None:
            response = response.model_copy(
                update=verdict.model_dump(
                    include={"confidence_score", "hallucinations_detected", "supported_claims", "total_claims"}
                )
            )

        logger.info(
            f"[{trace.trace_id}] Query complete: verification_available={response.verification_available} "
            f"diagnostic={diagnostic.value}"
        )
        return response

    def _forward(self, trace: Trace) -> None:
        if self._config.tracing_enabled:
            self._publisher.forward(trace)

    async def _cross_validate(
        self,
        request: QueryWithContextRequest,
        answer: str,
        trace: Trace,
    ) -> Optional[CrossValidationVerdict]:
        payload = CrossValidationRequest(
            prompt=request.prompt,
            response=answer,
            data_source_id=request.data_source_id,
            tokens_used=trace.tokens_used,
            cost_usd=trace.cost_usd,
            latency_ms=trace.latency_ms,
            provider=trace.provider,
        )

        try:
            return await asyncio.wait_for(
                self._cross_validator.validate(payload),
                timeout=self._config.cross_validation_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[{trace.trace_id}] Cross-validation timed out after "
                f"{self._config.cross_validation_timeout_s}s; returning answer without verdict"
            )
        except CrossValidationError as e:
            logger.warning(f"[{trace.trace_id}] Cross-validation unavailable: {e}")
        except Exception as e:
            # Verdict failures never fail the request
            logger.warning(f"[{trace.trace_id}] Cross-validation failed unexpectedly: {e!r}")
        return None
