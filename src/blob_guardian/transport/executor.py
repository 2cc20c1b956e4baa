"""Timeout, bounded retry, backoff and cancellation around one logical request."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, List, NoReturn, Optional

import httpx
import structlog

from ..config import RequestConfig
from ..exceptions import (
    Cancelled,
    ConnectionFailure,
    HttpStatusError,
    NetworkError,
    RequestExhausted,
    Timeout,
)
from ..models import AttemptOutcome, ExecutionResult, ExecutorStats, RequestAttempt
from .cancellation import CancellationToken

AttemptFactory = Callable[[], Awaitable[httpx.Response]]
SleepFunc = Callable[[float], Awaitable[Any]]

_BODY_EXCERPT = 200

logger = structlog.get_logger(__name__)


def _discard(task: "asyncio.Future[Any]") -> None:
    """Cancel ``task`` and make sure its outcome is retrieved."""

    def _consume(done: "asyncio.Future[Any]") -> None:
        if not done.cancelled():
            done.exception()

    task.cancel()
    task.add_done_callback(_consume)


class ResilientRequestExecutor:
    """Run one logical request with per-attempt timeout and sequential retries.

    Attempt ``i`` (0-based) that fails is followed by a wait of
    :meth:`RequestConfig.retry_delay_ms` and attempt ``i + 1``, until
    ``max_retries`` retries are spent. Timeouts, transport failures and
    non-2xx responses are all failed attempts; statuses listed in
    ``fatal_statuses`` end the call straight away. Attempt state lives in
    locals of :meth:`execute`, so concurrent calls never share it; only
    :attr:`stats` is aggregated per instance.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: RequestConfig | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._client = client
        self.config = config or RequestConfig()
        self._sleep = sleep
        self._clock = clock
        self.stats = ExecutorStats()

    async def send(
        self,
        method: str,
        url: str,
        *,
        operation: str = "request",
        cancel: CancellationToken | None = None,
        **kwargs: Any,
    ) -> ExecutionResult:
        async def _attempt() -> httpx.Response:
            return await self._client.request(method, url, **kwargs)

        return await self.execute(_attempt, operation=operation, cancel=cancel, method=method, url=url)

    async def execute(
        self,
        attempt_factory: AttemptFactory,
        *,
        operation: str = "request",
        cancel: CancellationToken | None = None,
        **log_context: Any,
    ) -> ExecutionResult:
        config = self.config
        total = config.max_retries + 1
        attempts: List[RequestAttempt] = []
        log = logger.bind(operation=operation, **log_context)
        self.stats.calls += 1

        index = 0
        while True:
            if cancel is not None and cancel.cancelled:
                self._raise_cancelled(cancel, attempts, operation, log)

            started = self._clock()
            self.stats.attempts += 1
            log.debug("request.attempt", attempt=index + 1, of=total)
            try:
                response = await self._run_attempt(attempt_factory, cancel)
            except Timeout as exc:
                error: NetworkError = exc
                outcome = AttemptOutcome.TIMEOUT
            except ConnectionFailure as exc:
                error = exc
                outcome = AttemptOutcome.CONNECTION_ERROR
            else:
                if response is None:
                    # the token fired while the attempt was in flight
                    attempts.append(
                        RequestAttempt(index, self._elapsed_ms(started), AttemptOutcome.CANCELLED)
                    )
                    self._raise_cancelled(cancel, attempts, operation, log)
                if response.is_success:
                    attempts.append(
                        RequestAttempt(index, self._elapsed_ms(started), AttemptOutcome.SUCCESS)
                    )
                    return ExecutionResult(response=response, attempts=tuple(attempts))
                error = HttpStatusError(response.status_code, response.text[:_BODY_EXCERPT])
                outcome = AttemptOutcome.HTTP_ERROR
                if response.status_code in config.fatal_statuses:
                    attempts.append(RequestAttempt(index, self._elapsed_ms(started), outcome, error))
                    self.stats.failures += 1
                    log.warning("request.fatal_status", status=response.status_code, attempt=index + 1)
                    raise error

            attempts.append(RequestAttempt(index, self._elapsed_ms(started), outcome, error))
            log.warning(
                "request.attempt_failed",
                attempt=index + 1,
                of=total,
                outcome=outcome.value,
                error=error.message,
            )

            if index + 1 >= total:
                self.stats.failures += 1
                log.error("request.exhausted", attempts=len(attempts), error=error.message)
                raise RequestExhausted(error, attempts, operation=operation)

            if cancel is not None and cancel.cancelled:
                self._raise_cancelled(cancel, attempts, operation, log)
            delay_ms = config.retry_delay_ms(index)
            self.stats.retries += 1
            log.info("request.retry", attempt=index + 2, delay_ms=delay_ms)
            if await self._wait(delay_ms / 1000, cancel):
                self._raise_cancelled(cancel, attempts, operation, log)
            index += 1

    async def _run_attempt(
        self, attempt_factory: AttemptFactory, cancel: CancellationToken | None
    ) -> Optional[httpx.Response]:
        """Run one bounded attempt. Returns None when the token fired first."""
        if cancel is None:
            return await self._bounded(attempt_factory)

        attempt = asyncio.ensure_future(self._bounded(attempt_factory))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _pending = await asyncio.wait(
                {attempt, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            _discard(attempt)
            _discard(waiter)
            raise
        # A response that is already in hand wins over a simultaneous cancel.
        if attempt in done:
            _discard(waiter)
            return attempt.result()
        _discard(attempt)
        return None

    async def _bounded(self, attempt_factory: AttemptFactory) -> httpx.Response:
        try:
            return await asyncio.wait_for(attempt_factory(), timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise Timeout(f"attempt exceeded {self.config.timeout_ms} ms") from exc
        except httpx.TimeoutException as exc:
            # raised by the HTTP client's own timeout, not the per-attempt bound
            raise Timeout(f"HTTP client timed out ({exc.__class__.__name__}): {exc}") from exc
        except httpx.TransportError as exc:
            raise ConnectionFailure(str(exc) or exc.__class__.__name__) from exc
        except httpx.RequestError as exc:
            # decoding failures, redirect loops and the like
            raise ConnectionFailure(f"{exc.__class__.__name__}: {exc}") from exc

    async def _wait(self, seconds: float, cancel: CancellationToken | None) -> bool:
        """Sleep between attempts. Returns True when the token fired first."""
        if cancel is None:
            await self._sleep(seconds)
            return False

        sleeper = asyncio.ensure_future(self._sleep(seconds))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _pending = await asyncio.wait(
                {sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            _discard(sleeper)
            _discard(waiter)
            raise
        for task in (sleeper, waiter):
            if task not in done:
                _discard(task)
        return waiter in done

    def _raise_cancelled(
        self,
        cancel: CancellationToken | None,
        attempts: List[RequestAttempt],
        operation: str,
        log: Any,
    ) -> NoReturn:
        self.stats.failures += 1
        reason = cancel.reason if cancel is not None else "request cancelled"
        log.info("request.cancelled", attempts=len(attempts), reason=reason)
        if cancel is not None:
            cancel.raise_if_cancelled(attempts=attempts, operation=operation)
        raise Cancelled(reason, attempts=attempts, operation=operation)

    def _elapsed_ms(self, started: float) -> float:
        return (self._clock() - started) * 1000


__all__ = ["AttemptFactory", "ResilientRequestExecutor"]
