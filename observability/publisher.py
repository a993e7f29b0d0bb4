"""
Trace Publisher

Forwards traces to the Lighthouse trace ingestion endpoint.

DESIGN RULES (NON-NEGOTIABLE):
- HTTP POST only, API key in the X-API-Key header
- At-most-once: a non-2xx status fails that attempt, no retries
- forward() is fire-and-forget: spawned on a background worker, never awaited
  by the primary call path, never raises
- Forward outcomes are observed only by the logger

This module exists solely to forward facts about calls.
It must NEVER influence the call it observes or delay its result.
"""

import asyncio
import json
import logging
import socket
import threading
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Dict, Optional, Set

from observability.errors import TraceForwardError
from observability.trace import Trace


logger = logging.getLogger(__name__)


DEFAULT_TRACE_ENDPOINT = "http://localhost:8080/api/sdk/traces"


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class PublisherConfig:
    """Where and how traces are forwarded."""

    api_key: str
    endpoint: str = DEFAULT_TRACE_ENDPOINT
    enabled: bool = True
    timeout_ms: int = 5000
    max_workers: int = 4


class TracePublisher:
    """
    Ships traces to the ingestion endpoint.

    send_trace() is the single synchronous POST.
    forward() runs it on the publisher's own worker pool, so a slow
    ingestion endpoint never occupies the event loop's default executor.
    Outcomes are only logged.
    """

    def __init__(self, config: PublisherConfig):
        self._config = config
        self._executor = ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="trace-forward",
        )
        self._pending: Set[asyncio.Future] = set()

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def pending(self) -> int:
        """Number of forwards still in flight on the event loop."""
        return len(self._pending)

    # ============================================================
    # LOW-LEVEL HTTP
    # ============================================================

    def send_trace(self, trace: Trace) -> Optional[Dict[str, Any]]:
        """
        POST one trace to the ingestion endpoint.

        Returns:
            Parsed JSON acknowledgement (None if disabled or the body is empty)

        Raises:
            TraceForwardError: non-2xx status or transport failure
        """
        if not self._config.enabled:
            return None

        data = json.dumps(trace.to_payload()).encode("utf-8")
        req = urllib.request.Request(
            self._config.endpoint,
            data=data,
            headers={
                "Content-Type": "application/json",
                "X-API-Key": self._config.api_key,
            },
            method="POST",
        )
        timeout_seconds = self._config.timeout_ms / 1000.0

        try:
            with urllib.request.urlopen(req, timeout=timeout_seconds) as response:
                status = getattr(response, "status", 200)
                body = response.read()
        except urllib.error.HTTPError as e:
            raise TraceForwardError(f"Lighthouse API error: {e.code}", status_code=e.code) from e
        except urllib.error.URLError as e:
            raise TraceForwardError(f"Lighthouse API unreachable: {e.reason}") from e
        except socket.timeout as e:
            raise TraceForwardError("Lighthouse API timeout") from e

        if not 200 <= status < 300:
            raise TraceForwardError(f"Lighthouse API error: {status}", status_code=status)

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError:
            return None

    # ============================================================
    # FIRE AND FORGET
    # ============================================================

    def forward(self, trace: Trace) -> None:
        """
        Forward a trace without blocking the caller.

        Inside a running event loop the POST runs on the publisher's worker
        pool. Outside one, a daemon thread is used. Never raises.
        """
        if not self._config.enabled:
            logger.debug(f"[TRACE] Forwarding disabled, dropping trace {trace.trace_id}")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        try:
            if loop is None:
                thread = threading.Thread(
                    target=self._send_and_log,
                    args=(trace,),
                    name=f"trace-forward-{trace.trace_id[:8]}",
                    daemon=True,
                )
                thread.start()
                return

            future = loop.run_in_executor(self._executor, self.send_trace, trace)
            self._pending.add(future)
            future.add_done_callback(partial(self._on_forward_done, trace.trace_id))
        except Exception as e:
            # Never throw - telemetry must not break the primary call path
            logger.warning(f"[TRACE] Could not schedule forward for {trace.trace_id}: {e}")

    def _send_and_log(self, trace: Trace) -> None:
        try:
            self.send_trace(trace)
            logger.debug(f"[TRACE] Forwarded {trace.trace_id}")
        except Exception as e:
            logger.warning(f"[TRACE] Failed to forward {trace.trace_id}: {e}")

    def _on_forward_done(self, trace_id: str, future: asyncio.Future) -> None:
        self._pending.discard(future)

        if future.cancelled():
            logger.warning(f"[TRACE] Forward cancelled for {trace_id}")
            return

        error = future.exception()
        if error is not None:
            logger.warning(f"[TRACE] Failed to forward {trace_id}: {error}")
        else:
            logger.debug(f"[TRACE] Forwarded {trace_id}")

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight forwards (shutdown and tests only)."""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)

    def close(self) -> None:
        """Stop accepting forwards; queued ones are dropped, running ones finish."""
        self._executor.shutdown(wait=False, cancel_futures=True)
