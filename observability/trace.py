"""
Trace Model

Canonical record describing one instrumented AI provider call.
This is a side-effect-only data structure - no business logic.

DESIGN RULES:
- Pure data container
- Immutable after creation
- Created exactly once per call attempt, forwarded once, never persisted locally
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


logger = logging.getLogger(__name__)


MAX_PROMPT_LENGTH = 10_000
MAX_RESPONSE_LENGTH = 50_000

DEFAULT_PROVIDER = "openai"

# Wire keys owned by the instrumentation layer. Caller metadata never overrides these.
RESERVED_METADATA_KEYS = frozenset({"url", "method", "statusCode", "error", "errorMessage"})

# Caller keys lifted into their own Trace fields instead of the open metadata map
CONSUMED_METADATA_KEYS = frozenset({"prompt", "provider"})


def truncate(text: Optional[str], limit: int) -> str:
    """Clip text to at most `limit` characters."""
    if not text:
        return ""
    return text[:limit]


@dataclass(frozen=True)
class TraceMetadata:
    """
    Call-shape facts plus an open extension map.

    Known fields are typed; anything else the caller supplies lands in `extra`.
    """

    url: Optional[str] = None
    method: Optional[str] = None
    status_code: Optional[int] = None
    error: bool = False
    error_message: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def merge(
        cls,
        *,
        url: Optional[str],
        method: Optional[str],
        status_code: Optional[int] = None,
        caller_metadata: Optional[Mapping[str, Any]] = None,
        error: bool = False,
        error_message: Optional[str] = None,
    ) -> "TraceMetadata":
        """
        Merge synthesized call-shape facts with caller metadata.

        Reserved keys always come from the instrumentation layer; caller
        values for them are dropped. Other caller keys are kept as-is.
        """
        extra: Dict[str, Any] = {}
        for key, value in (caller_metadata or {}).items():
            if key in CONSUMED_METADATA_KEYS:
                continue
            if key in RESERVED_METADATA_KEYS:
                logger.debug(f"Ignoring caller metadata for reserved key '{key}'")
                continue
            extra[key] = value

        return cls(
            url=url,
            method=method,
            status_code=status_code,
            error=error,
            error_message=error_message,
            extra=MappingProxyType(extra),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to the wire shape: extras, then the reserved keys on top."""
        data: Dict[str, Any] = dict(self.extra)
        data["url"] = self.url
        data["method"] = self.method
        data["statusCode"] = self.status_code
        if self.error:
            data["error"] = True
            data["errorMessage"] = self.error_message
        return data


@dataclass(frozen=True)
class Trace:
    """
    Immutable trace of a single instrumented call.

    Captures:
    - Content (prompt, response), truncated to fixed maxima
    - Estimated usage (tokens_used, cost_usd, latency_ms)
    - Identity (trace_id, provider, created_at)
    - Call-shape metadata
    """

    prompt: str
    response: str
    tokens_used: int
    cost_usd: float
    latency_ms: int
    provider: str
    metadata: TraceMetadata = field(default_factory=TraceMetadata)
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        *,
        prompt: Optional[str],
        response: Optional[str],
        tokens_used: int,
        cost_usd: float,
        latency_ms: int,
        provider: Optional[str],
        metadata: Optional[TraceMetadata] = None,
    ) -> "Trace":
        """Build a trace, applying truncation and non-negative clamping."""
        return cls(
            prompt=truncate(prompt, MAX_PROMPT_LENGTH),
            response=truncate(response, MAX_RESPONSE_LENGTH),
            tokens_used=max(0, int(tokens_used)),
            cost_usd=max(0.0, float(cost_usd)),
            latency_ms=max(0, int(latency_ms)),
            provider=provider or DEFAULT_PROVIDER,
            metadata=metadata or TraceMetadata(),
        )

    @property
    def failed(self) -> bool:
        return self.metadata.error

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the ingestion endpoint's JSON shape."""
        return {
            "prompt": self.prompt,
            "response": self.response,
            "tokensUsed": self.tokens_used,
            "costUsd": self.cost_usd,
            "latencyMs": self.latency_ms,
            "provider": self.provider,
            "metadata": self.metadata.to_dict(),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging/export, including identity fields."""
        data = self.to_payload()
        data["traceId"] = self.trace_id
        data["createdAt"] = self.created_at.isoformat()
        return data
