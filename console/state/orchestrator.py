from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeAlias, Union

from console.shared.core.errors import AsyncOperationError
from console.shared.infrastructure.api import DEFAULT_ERROR_TEXT, get_error_text

from .attempts import AsyncAttempt, AttemptTracker

Request: TypeAlias = Union[Awaitable[Any], Callable[[], Awaitable[Any]]]
MessageExtractor: TypeAlias = Callable[[Any], str]
PostProcess: TypeAlias = Callable[[Any], Any]
Combine: TypeAlias = Callable[[List[Any]], Any]

CANCELLED_MESSAGE = "Operation cancelled"


class Orchestrator:
    """Drives request calls and records their outcome on an AsyncAttempt.

    Every run follows the same steps: ``start`` the attempt, issue the
    requests, join them (all must succeed; the first failure is recorded
    immediately and later results are discarded), run the optional
    post-processing step, then record ``success`` with the combined payload.
    Failures of any step end up as a FAILED attempt rather than an exception.
    """

    def __init__(
        self,
        store: Any,
        tracker: Optional[AttemptTracker] = None,
        extract_message: Optional[MessageExtractor] = None,
        fallback_message: str = DEFAULT_ERROR_TEXT,
    ) -> None:
        self.store = store
        self.tracker = tracker or AttemptTracker(store)
        self.fallback_message = fallback_message
        self.extract_message: MessageExtractor = extract_message or (
            lambda err: get_error_text(err, fallback=self.fallback_message)
        )
        self._logger = logging.getLogger(__name__)
        # Orchestrations and discarded requests still running
        self._pending_tasks: set[asyncio.Future] = set()

    def run(
        self,
        operation_id: str,
        *requests: Request,
        post_process: Optional[PostProcess] = None,
        combine: Optional[Combine] = None,
    ) -> asyncio.Task:
        """Start the attempt now and finish it in a task on the running loop.

        The returned task doubles as the cancellation handle: cancelling it cancels the
        outstanding requests and records the attempt as failed.
        """
        loop = asyncio.get_running_loop()
        self.tracker.start(operation_id)
        entered: List[bool] = []
        task = loop.create_task(
            self._complete(operation_id, requests, post_process, combine, False, entered)
        )

        def _cancelled_before_start(done: asyncio.Task) -> None:
            if done.cancelled() and not entered:
                self._release(requests, cancel=True)
                self.tracker.fail(operation_id, CANCELLED_MESSAGE)

        task.add_done_callback(_cancelled_before_start)
        self._track(task)
        return task

    async def execute(
        self,
        operation_id: str,
        *requests: Request,
        post_process: Optional[PostProcess] = None,
        combine: Optional[Combine] = None,
        raise_on_failure: bool = False,
    ) -> AsyncAttempt:
        """Run one tracked operation to completion.

        Args:
            operation_id: Attempt id to record progress under
            *requests: Awaitables, or zero-argument callables returning them
            post_process: Synchronous step run with the payload before success
            combine: Builds the payload from the ordered results. By default a
                single request's result is used as-is and several results
                become a tuple.
            raise_on_failure: Raise ``AsyncOperationError`` instead of only
                recording the failure

        Returns:
            The attempt record as it stands when this run finished
        """
        self.tracker.start(operation_id)
        return await self._complete(operation_id, requests, post_process, combine, raise_on_failure)

    async def _complete(
        self,
        operation_id: str,
        requests: Sequence[Request],
        post_process: Optional[PostProcess],
        combine: Optional[Combine],
        raise_on_failure: bool,
        entered: Optional[List[bool]] = None,
    ) -> AsyncAttempt:
        if entered is not None:
            entered.append(True)

        futures: List[asyncio.Future] = []
        try:
            for request in requests:
                futures.append(self._issue(request))
        except Exception as exc:
            self._discard(futures)
            self._release(requests[len(futures) + 1:])
            return self._record_failure(operation_id, exc, raise_on_failure)

        try:
            results = await self._join(futures)
        except asyncio.CancelledError:
            for future in futures:
                if not future.done():
                    future.cancel()
            self._logger.info(f"Orchestrator: '{operation_id}' cancelled")
            self.tracker.fail(operation_id, CANCELLED_MESSAGE)
            raise
        except Exception as exc:
            self._discard(futures)
            return self._record_failure(operation_id, exc, raise_on_failure)

        try:
            if combine is not None:
                payload = combine(results)
            elif len(results) == 1:
                payload = results[0]
            elif results:
                payload = tuple(results)
            else:
                payload = None

            if post_process is not None:
                post_process(payload)
        except Exception as exc:
            return self._record_failure(operation_id, exc, raise_on_failure)

        self.tracker.success(operation_id, payload)
        return self.tracker.attempt(operation_id)

    def _issue(self, request: Request) -> asyncio.Future:
        if callable(request) and not asyncio.isfuture(request):
            request = request()
        return asyncio.ensure_future(request)

    async def _join(self, futures: Sequence[asyncio.Future]) -> List[Any]:
        """Wait until every request succeeds or the first one fails."""
        if not futures:
            return []

        await asyncio.wait(futures, return_when=asyncio.FIRST_EXCEPTION)

        for future in futures:
            if not future.done():
                continue
            if future.cancelled():
                raise AsyncOperationError(CANCELLED_MESSAGE)
            exc = future.exception()
            if exc is not None:
                raise exc

        return [future.result() for future in futures]

    def _release(self, requests: Sequence[Request], cancel: bool = False) -> None:
        """Close coroutines that were never issued; cancel pending futures if asked."""
        for request in requests:
            if asyncio.iscoroutine(request):
                request.close()
            elif cancel and asyncio.isfuture(request) and not request.done():
                request.cancel()

    def _discard(self, futures: Sequence[asyncio.Future]) -> None:
        """Let unfinished requests run out; their results are ignored."""
        for future in futures:
            if future.done():
                # Mark any exception as retrieved
                if not future.cancelled():
                    future.exception()
                continue
            future.add_done_callback(self._drop_result)
            self._track(future)

    def _drop_result(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._logger.debug(f"Orchestrator: Discarding late failure: {exc!r}")
        else:
            self._logger.debug("Orchestrator: Discarding late result")

    def _message_for(self, exc: BaseException) -> str:
        try:
            return self.extract_message(exc) or self.fallback_message
        except Exception:
            self._logger.exception("Orchestrator: Message extraction failed")
            return self.fallback_message

    def _record_failure(self, operation_id: str, exc: BaseException, raise_on_failure: bool) -> AsyncAttempt:
        message = self._message_for(exc)
        self._logger.warning(f"Orchestrator: '{operation_id}' failed: {message}")
        self.tracker.fail(operation_id, message)
        if raise_on_failure:
            raise AsyncOperationError(message, operation_id=operation_id, cause=exc) from exc
        return self.tracker.attempt(operation_id)

    def _track(self, future: asyncio.Future) -> None:
        self._pending_tasks.add(future)
        future.add_done_callback(self._pending_tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._pending_tasks)

    async def wait_until_idle(self, timeout: float = 60.0) -> bool:
        """Wait for all scheduled orchestrations and discarded requests.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if everything completed, False if timeout reached
        """
        if not self._pending_tasks:
            return True

        self._logger.debug(f"Orchestrator: Waiting for {len(self._pending_tasks)} pending tasks...")

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while self._pending_tasks:
            remaining = timeout - (loop.time() - start_time)
            if remaining <= 0:
                self._logger.warning(f"Orchestrator: Timeout reached with {len(self._pending_tasks)} tasks pending")
                return False

            # Tasks may schedule more work, so loop until the set drains
            await asyncio.wait(list(self._pending_tasks), timeout=remaining)
            await asyncio.sleep(0)

        return True
