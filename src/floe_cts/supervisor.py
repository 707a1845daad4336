"""Timeout-supervised execution of test bodies.

Runs a nullary body in a detached worker thread and waits for either its
completion or the deadline, whichever comes first.

Outcomes:
    PASSED    - body returned (anything but False)
    FAILED    - body returned False or raised AssertionError
    FAULTED   - body raised any other exception
    TIMED_OUT - deadline elapsed first

Limitations:
    A timed-out worker is NOT terminated; Python offers no safe way to
    preempt a running thread. The worker is abandoned: it keeps running as a
    daemon thread, its eventual result is discarded, and it may still mutate
    shared state (including the scratchpad) while later tests execute.
    Bodies can opt into cooperative cancellation by polling
    current_cancel_token().cancelled, which is set at the deadline.

    A body completing exactly at the deadline may be reported either way.

Example:
    >>> outcome = run_with_timeout(lambda: time.sleep(0.1), timeout_ms=1000)
    >>> outcome.status
    <OutcomeStatus.PASSED: 'passed'>
"""

from __future__ import annotations

import contextvars
import itertools
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, wait
from contextvars import ContextVar
from typing import Any

import structlog

from floe_cts.models import ExecutionOutcome, OutcomeStatus, describe_exception

logger = structlog.get_logger(__name__)

_worker_ids = itertools.count(1)


class CancelToken:
    """Cooperative cancellation signal for a supervised body.

    Example:
        >>> def body() -> None:
        ...     token = current_cancel_token()
        ...     while not token.cancelled:
        ...         do_one_step()
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        """Check if the deadline has been declared exceeded."""
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to timeout seconds, waking early on cancellation.

        Returns:
            True if cancelled.
        """
        return self._event.wait(timeout)


_cancel_token: ContextVar[CancelToken | None] = ContextVar("floe_cts_cancel_token", default=None)


def current_cancel_token() -> CancelToken:
    """Cancellation token of the supervised body currently running.

    Outside a supervised body this returns a token that is never cancelled.
    """
    token = _cancel_token.get()
    return token if token is not None else CancelToken()


class TimeoutSupervisor:
    """Runs bodies with a wall-clock deadline and tracks abandoned workers."""

    def __init__(self, thread_name_prefix: str = "floe-cts-worker") -> None:
        self._thread_name_prefix = thread_name_prefix
        self._lock = threading.Lock()
        self._abandoned: list[threading.Thread] = []

    def run(self, body: Callable[[], Any], timeout_ms: int) -> ExecutionOutcome:
        """Run body with a deadline.

        The caller never waits longer than timeout_ms plus scheduling slop.
        Exceptions that are not Exception subclasses (KeyboardInterrupt,
        SystemExit, pytest outcome exceptions) raised by a body completing in
        time are re-raised in the caller.

        Args:
            body: Nullary callable; returning False means failure.
            timeout_ms: Deadline in milliseconds. <= 0 times out immediately
                without starting the body.

        Returns:
            ExecutionOutcome describing what happened.
        """
        if timeout_ms <= 0:
            logger.warning("supervisor.non_positive_timeout", timeout_ms=timeout_ms)
            return ExecutionOutcome(
                status=OutcomeStatus.TIMED_OUT,
                message=f"Timed out immediately: non-positive timeout ({timeout_ms} ms)",
                timeout_ms=timeout_ms,
            )

        future: Future[Any] = Future()
        token = CancelToken()
        context = contextvars.copy_context()

        def _work() -> None:
            _cancel_token.set(token)
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = body()
            except BaseException as e:  # noqa: BLE001 - delivered through the future
                future.set_exception(e)
            else:
                future.set_result(result)

        worker = threading.Thread(
            target=context.run,
            args=(_work,),
            name=f"{self._thread_name_prefix}-{next(_worker_ids)}",
            daemon=True,
        )

        start = time.monotonic()
        worker.start()
        done, _ = wait([future], timeout=timeout_ms / 1000.0)
        elapsed_ms = (time.monotonic() - start) * 1000.0

        if not done:
            token.cancel()
            self._abandon(worker, future)
            logger.warning(
                "supervisor.timed_out",
                timeout_ms=timeout_ms,
                worker=worker.name,
            )
            return ExecutionOutcome(
                status=OutcomeStatus.TIMED_OUT,
                message=f"Timed out after {timeout_ms} ms (worker {worker.name} abandoned)",
                elapsed_ms=elapsed_ms,
                timeout_ms=timeout_ms,
            )

        worker.join()
        error = future.exception()
        if error is None:
            if future.result() is False:
                return ExecutionOutcome(
                    status=OutcomeStatus.FAILED,
                    message="Body reported failure",
                    elapsed_ms=elapsed_ms,
                    timeout_ms=timeout_ms,
                )
            return ExecutionOutcome(
                status=OutcomeStatus.PASSED,
                elapsed_ms=elapsed_ms,
                timeout_ms=timeout_ms,
            )

        if not isinstance(error, Exception):
            raise error

        if isinstance(error, AssertionError):
            status = OutcomeStatus.FAILED
        else:
            status = OutcomeStatus.FAULTED
            logger.error(
                "supervisor.body_faulted",
                error=str(error),
                exception_type=type(error).__name__,
            )
        return ExecutionOutcome(
            status=status,
            message=describe_exception(error),
            elapsed_ms=elapsed_ms,
            timeout_ms=timeout_ms,
        )

    def _abandon(self, worker: threading.Thread, future: Future[Any]) -> None:
        with self._lock:
            self._abandoned = [t for t in self._abandoned if t.is_alive()]
            self._abandoned.append(worker)

        def _discard(finished: Future[Any]) -> None:
            error = finished.exception()
            logger.debug(
                "supervisor.abandoned_worker_finished",
                worker=worker.name,
                error=str(error) if error is not None else None,
            )

        future.add_done_callback(_discard)

    def abandoned_workers(self) -> int:
        """Number of abandoned workers that are still running."""
        with self._lock:
            self._abandoned = [t for t in self._abandoned if t.is_alive()]
            return len(self._abandoned)


_default_supervisor = TimeoutSupervisor()


def get_supervisor() -> TimeoutSupervisor:
    """The supervisor used by run_with_timeout()."""
    return _default_supervisor


def run_with_timeout(body: Callable[[], Any], timeout_ms: int) -> ExecutionOutcome:
    """Run body under a deadline using the default supervisor.

    See TimeoutSupervisor.run().
    """
    return _default_supervisor.run(body, timeout_ms)


__all__ = [
    "CancelToken",
    "TimeoutSupervisor",
    "current_cancel_token",
    "get_supervisor",
    "run_with_timeout",
]
