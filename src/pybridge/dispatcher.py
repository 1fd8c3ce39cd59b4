"""Request lifecycle dispatcher.

Owns:
- creating :class:`~pybridge.request.Request` objects
- ordered default resolve/reject callbacks, read live at settlement time
- per-request timeout timers, fixed at creation time
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pybridge.exceptions import BridgeError
from pybridge.request import Request, RequestOptions, RequestState

_logger = logging.getLogger(__name__)

ResolveCallback = Callable[[Request, Any], None]
RejectCallback = Callable[[Request, BaseException], None]
TimeoutCallback = Callable[[Request], None]


@dataclass(frozen=True, slots=True)
class TimeoutSpec:
    """A timeout callback and how long a request may stay pending before it fires."""

    callback: TimeoutCallback
    duration_ms: float


class RequestDispatcher:
    """Factory for requests that share default lifecycle callbacks.

    Usage::

        async with RequestDispatcher() as dispatcher:
            dispatcher.add_default_reject_callback(lambda req, err: log_failure(req, err))
            dispatcher.add_default_timeout_callback(lambda req: warn_slow(req), 30_000)
            request = dispatcher.new_request({"data": event})
            await request.outcome_from(handle(event))

    The callback registries belong to this instance and only grow.  Resolve
    and reject callbacks are read when a request settles, so callbacks added
    after :meth:`new_request` still see that request.  Timeout callbacks are
    read when the request is created.

    A callback that raises is not caught here: the exception reaches the event
    loop's exception handler and the remaining callbacks of that list are
    skipped for that settlement.
    """

    def __init__(self) -> None:
        self._resolves: list[ResolveCallback] = []
        self._rejects: list[RejectCallback] = []
        self._timeouts: list[TimeoutSpec] = []
        self._timers: dict[Request, dict[int, asyncio.TimerHandle]] = {}
        self._closed = False

    async def __aenter__(self) -> RequestDispatcher:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Registries
    # ------------------------------------------------------------------

    def add_default_resolve_callback(self, fn: ResolveCallback) -> None:
        """Call ``fn(request, value)`` for every request that resolves."""
        self._resolves.append(fn)

    def add_default_reject_callback(self, fn: RejectCallback) -> None:
        """Call ``fn(request, error)`` for every request that is rejected."""
        self._rejects.append(fn)

    def add_default_timeout_callback(self, fn: TimeoutCallback, duration_ms: float) -> None:
        """Call ``fn(request)`` for requests still pending *duration_ms* after creation.

        Only applies to requests created after this call.
        """
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        self._timeouts.append(TimeoutSpec(callback=fn, duration_ms=duration_ms))

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def new_request(self, options: RequestOptions | dict[str, Any] | None = None) -> Request:
        """Create a request wired to this dispatcher's callbacks.

        Returns immediately; every notification happens later on the loop.
        """
        if self._closed:
            raise BridgeError("RequestDispatcher is closed")

        request = Request(options)
        request.add_done_callback(self._on_settled)

        loop = asyncio.get_running_loop()
        handles: dict[int, asyncio.TimerHandle] = {}
        for index, spec in enumerate(self._timeouts):
            handles[index] = loop.call_later(spec.duration_ms / 1000.0, self._on_timeout, request, index, spec)
        if handles:
            self._timers[request] = handles
            _logger.debug("Scheduled %d timeout(s) for request %s", len(handles), request.id)
        return request

    def _on_settled(self, request: Request) -> None:
        # Timers of a settled request can no longer fire anything.
        for handle in self._timers.pop(request, {}).values():
            handle.cancel()

        if request.state is RequestState.RESOLVED:
            for resolve_fn in list(self._resolves):
                resolve_fn(request, request.result)
        elif request.state is RequestState.REJECTED:
            for reject_fn in list(self._rejects):
                reject_fn(request, request.error)

    def _on_timeout(self, request: Request, index: int, spec: TimeoutSpec) -> None:
        handles = self._timers.get(request)
        if handles is not None:
            handles.pop(index, None)
            if not handles:
                self._timers.pop(request, None)

        if not request.is_pending():
            return
        _logger.debug("Request %s still pending after %sms", request.id, spec.duration_ms)
        spec.callback(request)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def pending_timer_count(self) -> int:
        return sum(len(handles) for handles in self._timers.values())

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Cancel every outstanding timer. Safe to call more than once."""
        self._closed = True
        timers = self._timers
        self._timers = {}
        for handles in timers.values():
            for handle in handles.values():
                handle.cancel()
        if timers:
            _logger.debug("Cancelled timers for %d pending request(s)", len(timers))
