#!/usr/bin/env python3
"""
Trace Publisher Tests

Verifies forwarding semantics:
- send_trace posts the Trace payload with the API key header
- Non-2xx and transport errors fail the attempt (no retry)
- forward() never raises and never blocks the caller
- Disabled mode produces no HTTP calls
"""

import asyncio
import io
import json
import socket
import threading
import time
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from observability.errors import TraceForwardError
from observability.publisher import PublisherConfig, TracePublisher
from observability.trace import Trace, TraceMetadata


def create_test_trace() -> Trace:
    """Create a sample Trace for testing."""
    return Trace.create(
        prompt="Hello, this is a test!",
        response="This is a test response from the SDK",
        tokens_used=50,
        cost_usd=0.0001,
        latency_ms=150,
        provider="test",
        metadata=TraceMetadata.merge(url="https://example.com", method="GET", status_code=200),
    )


def create_publisher(enabled: bool = True) -> TracePublisher:
    return TracePublisher(
        PublisherConfig(
            api_key="lh_test_key",
            endpoint="http://localhost:8080/api/sdk/traces",
            enabled=enabled,
            timeout_ms=500,
        )
    )


def mock_http_response(status: int = 200, body: bytes = b'{"id":"trace-1"}') -> MagicMock:
    response = MagicMock()
    response.status = status
    response.read.return_value = body
    response.__enter__ = MagicMock(return_value=response)
    response.__exit__ = MagicMock(return_value=False)
    return response


def test_send_trace_posts_payload_with_api_key():
    """Test: one POST with JSON body and X-API-Key header."""
    publisher = create_publisher()
    trace = create_test_trace()

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = mock_http_response()
        ack = publisher.send_trace(trace)

    assert ack == {"id": "trace-1"}
    assert mock_urlopen.call_count == 1

    request = mock_urlopen.call_args.args[0]
    assert request.get_method() == "POST"
    assert request.full_url == "http://localhost:8080/api/sdk/traces"
    assert request.get_header("X-api-key") == "lh_test_key"
    assert json.loads(request.data) == trace.to_payload()


def test_send_trace_raises_on_non_success_status():
    """Test: a non-2xx status is a hard failure for that attempt."""
    publisher = create_publisher()

    error = urllib.error.HTTPError(
        "http://localhost:8080/api/sdk/traces", 401, "Unauthorized", {}, io.BytesIO(b"")
    )
    with patch("urllib.request.urlopen", side_effect=error) as mock_urlopen:
        with pytest.raises(TraceForwardError) as exc_info:
            publisher.send_trace(create_test_trace())

    assert exc_info.value.status_code == 401
    assert mock_urlopen.call_count == 1  # no retry


def test_send_trace_raises_on_connection_error():
    publisher = create_publisher()

    with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("Connection refused")):
        with pytest.raises(TraceForwardError):
            publisher.send_trace(create_test_trace())


def test_send_trace_raises_on_timeout():
    publisher = create_publisher()

    with patch("urllib.request.urlopen", side_effect=socket.timeout("timed out")):
        with pytest.raises(TraceForwardError):
            publisher.send_trace(create_test_trace())


def test_disabled_mode_no_http_calls():
    """Test: When disabled, no HTTP calls are made."""
    publisher = create_publisher(enabled=False)

    with patch("urllib.request.urlopen") as mock_urlopen:
        assert publisher.send_trace(create_test_trace()) is None
        publisher.forward(create_test_trace())

    mock_urlopen.assert_not_called()


@pytest.mark.asyncio
async def test_forward_never_raises_on_failure(caplog):
    """Test: forward() swallows forwarding failures and only logs them."""
    publisher = create_publisher()

    with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("Connection refused")):
        publisher.forward(create_test_trace())
        await publisher.drain(timeout=2.0)

    assert publisher.pending == 0
    assert any("Failed to forward" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_forward_does_not_block_caller():
    """Test: forward() returns immediately even when the backend is slow."""
    publisher = create_publisher()

    def slow_urlopen(*args, **kwargs):
        time.sleep(0.5)
        return mock_http_response()

    with patch("urllib.request.urlopen", side_effect=slow_urlopen) as mock_urlopen:
        started = time.monotonic()
        publisher.forward(create_test_trace())
        elapsed = time.monotonic() - started

        assert elapsed < 0.1
        assert publisher.pending == 1

        await publisher.drain(timeout=2.0)

    assert mock_urlopen.call_count == 1
    assert publisher.pending == 0


@pytest.mark.asyncio
async def test_concurrent_forwards_are_independent():
    publisher = create_publisher()
    calls = []

    def flaky_urlopen(request, timeout=None):
        calls.append(request)
        if len(calls) == 1:
            raise urllib.error.URLError("first one fails")
        return mock_http_response()

    with patch("urllib.request.urlopen", side_effect=flaky_urlopen):
        for _ in range(3):
            publisher.forward(create_test_trace())
        await publisher.drain(timeout=2.0)

    assert len(calls) == 3


def test_forward_outside_event_loop_uses_background_thread():
    publisher = create_publisher()
    sent = []

    with patch.object(publisher, "send_trace", side_effect=lambda trace: sent.append(trace)):
        publisher.forward(create_test_trace())

        deadline = time.monotonic() + 2.0
        while not sent and time.monotonic() < deadline:
            time.sleep(0.01)

    assert len(sent) == 1


@pytest.mark.asyncio
async def test_slow_forwards_do_not_occupy_default_executor():
    """Test: a hanging ingestion endpoint leaves asyncio.to_thread free for request work."""
    publisher = create_publisher()
    release = threading.Event()

    def hanging_urlopen(*args, **kwargs):
        release.wait(5.0)
        return mock_http_response()

    with patch("urllib.request.urlopen", side_effect=hanging_urlopen):
        # More forwards than the default executor has threads on any machine
        for _ in range(40):
            publisher.forward(create_test_trace())
        await asyncio.sleep(0.05)

        started = time.monotonic()
        await asyncio.to_thread(lambda: None)
        elapsed = time.monotonic() - started

        release.set()
        await publisher.drain(timeout=5.0)

    assert elapsed < 0.5
    assert publisher.pending == 0


@pytest.mark.asyncio
async def test_close_drops_queued_forwards():
    publisher = TracePublisher(
        PublisherConfig(api_key="lh_test_key", max_workers=1, timeout_ms=500)
    )
    release = threading.Event()

    def hanging_urlopen(*args, **kwargs):
        release.wait(5.0)
        return mock_http_response()

    with patch("urllib.request.urlopen", side_effect=hanging_urlopen) as mock_urlopen:
        for _ in range(3):
            publisher.forward(create_test_trace())
        await asyncio.sleep(0.05)

        publisher.close()
        release.set()
        await publisher.drain(timeout=2.0)

    # Only the forward already running reached the endpoint
    assert mock_urlopen.call_count == 1
    assert publisher.pending == 0

    # Forwarding after close is logged, not raised
    publisher.forward(create_test_trace())
    assert publisher.pending == 0
