"""Tests for HttpExecutorService."""

import asyncio
import socket
import threading
import time

import httpx
import pytest

from pingcron.models import Task
from pingcron.services.executor import (
    ERROR_HTTP,
    ERROR_INVALID_CONFIG,
    ERROR_TIMEOUT,
    ERROR_TRANSPORT,
    HttpExecutorService,
)


def make_task(**overrides) -> Task:
    """Build an unsaved task; the executor never touches the database."""
    fields = {
        "name": "ping",
        "target_url": "https://example.com/ok",
        "http_method": "GET",
        "frequency_minutes": 5,
        "timeout_seconds": 10,
    }
    fields.update(overrides)
    return Task(**fields)


def test_execute_success():
    """Test a 200 response is a success with timing and size."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="pong"))

    result = HttpExecutorService.execute(make_task(), transport=transport)

    assert result.status == "success"
    assert result.succeeded
    assert result.http_status_code == 200
    assert result.response_time_ms is not None
    assert result.response_time_ms >= 0
    assert result.response_size == 4
    assert result.response_body == "pong"
    assert result.error_message is None
    assert result.error_code is None


def test_execute_http_error():
    """Test a 500 response is failed with a readable message."""
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

    result = HttpExecutorService.execute(make_task(), transport=transport)

    assert result.status == "failed"
    assert result.http_status_code == 500
    assert result.error_message == "HTTP 500: Internal Server Error"
    assert result.error_code == ERROR_HTTP
    assert result.response_time_ms is not None


def test_execute_redirect_status_is_success():
    """Test a 3xx response without a location counts as ok."""
    transport = httpx.MockTransport(lambda request: httpx.Response(304))

    result = HttpExecutorService.execute(make_task(), transport=transport)

    assert result.status == "success"
    assert result.http_status_code == 304


def test_execute_follows_redirects():
    """Test that redirects are followed to the final response."""

    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(301, headers={"Location": "https://example.com/new"})
        return httpx.Response(200, text="moved")

    result = HttpExecutorService.execute(
        make_task(target_url="https://example.com/old"),
        transport=httpx.MockTransport(handler),
    )

    assert result.status == "success"
    assert result.http_status_code == 200
    assert result.response_body == "moved"


def test_execute_timeout_is_distinguishable():
    """Test a transport timeout maps to the timeout status."""

    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = HttpExecutorService.execute(
        make_task(), transport=httpx.MockTransport(handler)
    )

    assert result.status == "timeout"
    assert result.error_code == ERROR_TIMEOUT
    assert result.http_status_code is None
    assert result.response_time_ms is not None


def test_execute_connection_error():
    """Test an unreachable target is a failed attempt."""

    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = HttpExecutorService.execute(
        make_task(), transport=httpx.MockTransport(handler)
    )

    assert result.status == "failed"
    assert result.error_code == ERROR_TRANSPORT
    assert "connection refused" in result.error_message
    assert result.http_status_code is None


@pytest.mark.parametrize("url", ["not a url", "ftp://example.com/file", "/relative"])
def test_execute_invalid_url(url):
    """Test malformed URLs fail before any request is sent."""
    transport = httpx.MockTransport(lambda request: pytest.fail("request was sent"))

    result = HttpExecutorService.execute(make_task(target_url=url), transport=transport)

    assert result.status == "failed"
    assert result.error_code == ERROR_INVALID_CONFIG
    assert "Invalid URL" in result.error_message
    assert result.response_time_ms is None


def test_execute_unsupported_method():
    """Test an unknown method is rejected as invalid configuration."""
    transport = httpx.MockTransport(lambda request: pytest.fail("request was sent"))

    result = HttpExecutorService.execute(
        make_task(http_method="PATCH"), transport=transport
    )

    assert result.status == "failed"
    assert result.error_code == ERROR_INVALID_CONFIG
    assert result.response_time_ms is None


def test_execute_sends_headers_and_body_for_post():
    """Test task headers are merged and the body is sent for POST."""
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["headers"] = request.headers
        seen["body"] = request.content
        return httpx.Response(201)

    task = make_task(
        http_method="POST",
        headers={"X-Token": "secret", "User-Agent": "custom"},
        body='{"ping": 1}',
    )
    result = HttpExecutorService.execute(task, transport=httpx.MockTransport(handler))

    assert result.status == "success"
    assert seen["method"] == "POST"
    assert seen["headers"]["X-Token"] == "secret"
    assert seen["headers"]["User-Agent"] == "custom"
    assert seen["body"] == b'{"ping": 1}'
    assert result.request_headers["X-Token"] == "secret"


def test_execute_drops_body_for_get():
    """Test a body configured on a GET task is not sent."""
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200)

    HttpExecutorService.execute(
        make_task(body="ignored"), transport=httpx.MockTransport(handler)
    )

    assert seen["body"] == b""


def test_execute_truncates_body_but_counts_full_size(mocker):
    """Test only the leading part of a large body is kept."""
    mocker.patch("pingcron.services.executor.settings.response_body_limit", 10)
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="x" * 5000))

    result = HttpExecutorService.execute(make_task(), transport=transport)

    assert result.response_size == 5000
    assert result.response_body == "x" * 10


def test_effective_timeout_is_capped(mocker):
    """Test the engine cap wins over a larger task timeout."""
    mocker.patch("pingcron.services.executor.settings.engine_timeout_cap", 9)

    assert HttpExecutorService.effective_timeout(make_task(timeout_seconds=30)) == 9
    assert HttpExecutorService.effective_timeout(make_task(timeout_seconds=3)) == 3
    assert (
        HttpExecutorService.effective_timeout(make_task(timeout_seconds=30), 20) == 20
    )


def test_execute_timeout_bound_against_silent_server():
    """Test a target that never answers is abandoned near the timeout."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]
    accepted = []

    def accept_and_hang():
        try:
            conn, _ = server.accept()
            accepted.append(conn)
        except OSError:
            pass

    thread = threading.Thread(target=accept_and_hang, daemon=True)
    thread.start()

    try:
        task = make_task(target_url=f"http://127.0.0.1:{port}/", timeout_seconds=1)
        start = time.monotonic()
        result = HttpExecutorService.execute(task)
        elapsed = time.monotonic() - start
    finally:
        for conn in accepted:
            conn.close()
        server.close()

    assert result.status == "timeout"
    assert result.http_status_code is None
    assert elapsed < 3


def test_execute_timeout_bound_against_trickling_headers():
    """Test headers dripped byte by byte are cut off at the timeout."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]
    stop = threading.Event()

    def accept_and_trickle():
        try:
            conn, _ = server.accept()
        except OSError:
            return
        try:
            conn.sendall(b"HTTP/1.1 200 OK\r\nX-Slow: ")
            while not stop.wait(0.2):
                conn.sendall(b"a")
        except OSError:
            pass
        finally:
            conn.close()

    thread = threading.Thread(target=accept_and_trickle, daemon=True)
    thread.start()

    try:
        task = make_task(target_url=f"http://127.0.0.1:{port}/", timeout_seconds=1)
        start = time.monotonic()
        result = HttpExecutorService.execute(task)
        elapsed = time.monotonic() - start
    finally:
        stop.set()
        server.close()
        thread.join(timeout=5)

    assert result.status == "timeout"
    assert result.error_code == ERROR_TIMEOUT
    assert result.http_status_code is None
    assert elapsed < 3


def test_execute_timeout_bound_against_slow_body():
    """Test a body that keeps streaming past the timeout is a timeout."""

    async def trickle():
        while True:
            await asyncio.sleep(0.1)
            yield b"x"

    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, content=trickle())
    )

    start = time.monotonic()
    result = HttpExecutorService.execute(
        make_task(timeout_seconds=1), transport=transport
    )
    elapsed = time.monotonic() - start

    assert result.status == "timeout"
    assert result.http_status_code is None
    assert elapsed < 3
