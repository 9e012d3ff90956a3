"""HTTP executor service: runs a single task's request."""

import asyncio
import logging
import time
from dataclasses import dataclass

import httpx

from pingcron.core.config import settings
from pingcron.models import BODY_METHODS, ExecutionStatus, HttpMethod, Task

logger = logging.getLogger(__name__)

ERROR_TIMEOUT = "timeout"
ERROR_TRANSPORT = "transport_error"
ERROR_HTTP = "http_error"
ERROR_INVALID_CONFIG = "invalid_config"


@dataclass
class ExecutionResult:
    """Outcome of one HTTP attempt, before it is persisted."""

    status: str
    http_status_code: int | None = None
    response_time_ms: int | None = None
    response_size: int | None = None
    error_message: str | None = None
    error_code: str | None = None
    request_headers: dict[str, str] | None = None
    response_headers: dict[str, str] | None = None
    response_body: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS


class HttpExecutorService:
    """Service for executing a task's HTTP request."""

    @staticmethod
    def effective_timeout(task: Task, timeout_cap: float | None = None) -> float:
        """Task timeout bounded by the engine cap."""
        cap = settings.engine_timeout_cap if timeout_cap is None else timeout_cap
        return float(min(task.timeout_seconds, cap))

    @staticmethod
    def build_headers(task: Task) -> dict[str, str]:
        """Default headers overlaid with the task's own headers."""
        headers = {"User-Agent": settings.user_agent}
        if task.headers:
            headers.update({str(k): str(v) for k, v in task.headers.items()})
        return headers

    @staticmethod
    def validate(task: Task) -> str | None:
        """Return an error message if the task cannot be turned into a request."""
        if task.http_method not in HttpMethod.__members__:
            return f"Unsupported HTTP method: {task.http_method}"

        try:
            url = httpx.URL(task.target_url)
        except (httpx.InvalidURL, TypeError) as e:
            return f"Invalid URL {task.target_url!r}: {e}"

        if url.scheme not in ("http", "https") or not url.host:
            return f"Invalid URL {task.target_url!r}: expected an absolute http(s) URL"

        return None

    @staticmethod
    def execute(
        task: Task,
        timeout_cap: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ExecutionResult:
        """Execute one HTTP request for a task.

        Never raises for request or response problems; every outcome is
        returned as an ExecutionResult. Does not touch the database.

        The effective timeout bounds the whole attempt, from connecting to
        the last byte of the body. Each call runs its own event loop, so it
        is safe to call from worker threads.

        Args:
            task: Task to execute
            timeout_cap: Override for the engine timeout cap
            transport: Optional httpx transport (used by tests)

        Returns:
            ExecutionResult describing the attempt
        """
        headers = HttpExecutorService.build_headers(task)

        error = HttpExecutorService.validate(task)
        if error is not None:
            logger.warning(f"Task {task.id} has invalid configuration: {error}")
            return ExecutionResult(
                status=ExecutionStatus.FAILED.value,
                error_message=error,
                error_code=ERROR_INVALID_CONFIG,
                request_headers=headers,
            )

        timeout = HttpExecutorService.effective_timeout(task, timeout_cap)

        logger.info(f"Executing task {task.id}: {task.http_method} {task.target_url}")
        return asyncio.run(
            HttpExecutorService._send(task, headers, timeout, transport)
        )

    @staticmethod
    async def _send(
        task: Task,
        headers: dict[str, str],
        timeout: float,
        transport: httpx.AsyncBaseTransport | None,
    ) -> ExecutionResult:
        content = task.body if task.body and task.http_method in BODY_METHODS else None

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        ) as client:
            start = time.perf_counter()
            try:
                async with asyncio.timeout(timeout):
                    request = client.build_request(
                        task.http_method,
                        task.target_url,
                        headers=headers,
                        content=content,
                    )
                    response = await client.send(request, stream=True)
                    try:
                        size, head = await HttpExecutorService._read_body(response)
                    finally:
                        await response.aclose()
                elapsed_ms = int((time.perf_counter() - start) * 1000)
            except (httpx.TimeoutException, TimeoutError) as e:
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                logger.warning(f"Task {task.id} timed out after {elapsed_ms}ms")
                message = f"Request timed out after {timeout:g}s"
                if str(e):
                    message = f"{message}: {e}"
                return ExecutionResult(
                    status=ExecutionStatus.TIMEOUT.value,
                    response_time_ms=elapsed_ms,
                    error_message=message,
                    error_code=ERROR_TIMEOUT,
                    request_headers=headers,
                )
            except httpx.HTTPError as e:
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                logger.warning(f"Task {task.id} request failed: {e}")
                return ExecutionResult(
                    status=ExecutionStatus.FAILED.value,
                    response_time_ms=elapsed_ms,
                    error_message=str(e) or e.__class__.__name__,
                    error_code=ERROR_TRANSPORT,
                    request_headers=headers,
                )
            except (ValueError, TypeError) as e:
                # Headers or body that cannot be encoded into a request
                logger.warning(f"Task {task.id} request could not be built: {e}")
                return ExecutionResult(
                    status=ExecutionStatus.FAILED.value,
                    error_message=f"Invalid request: {e}",
                    error_code=ERROR_INVALID_CONFIG,
                    request_headers=headers,
                )

        code = response.status_code
        ok = 200 <= code < 400
        if ok:
            status = ExecutionStatus.SUCCESS.value
            error_message = None
            error_code = None
        else:
            status = ExecutionStatus.FAILED.value
            error_message = f"HTTP {code}: {response.reason_phrase}"
            error_code = ERROR_HTTP

        logger.info(f"Task {task.id} finished: {code} ({elapsed_ms}ms)")
        return ExecutionResult(
            status=status,
            http_status_code=code,
            response_time_ms=elapsed_ms,
            response_size=size,
            error_message=error_message,
            error_code=error_code,
            request_headers=headers,
            response_headers=dict(response.headers),
            response_body=head,
        )

    @staticmethod
    async def _read_body(response: httpx.Response) -> tuple[int, str]:
        """Drain the body; return (byte size, leading text)."""
        limit = settings.response_body_limit
        size = 0
        # Enough bytes to decode `limit` characters of multi-byte text
        kept = bytearray()
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if len(kept) < limit * 4:
                kept.extend(chunk[: limit * 4 - len(kept)])

        encoding = response.encoding or "utf-8"
        head = bytes(kept).decode(encoding, errors="replace")[:limit]
        return size, head
