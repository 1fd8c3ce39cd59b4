"""A trackable asynchronous unit of work.

A :class:`Request` starts ``pending`` and settles exactly once, either
``resolved`` with a value or ``rejected`` with an error.  Settlement state is
an explicit enum read synchronously, so timers and listeners never need to
introspect a future.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pybridge.exceptions import RequestAlreadySettledError

_logger = logging.getLogger(__name__)


class RequestState(StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


def _new_request_id() -> str:
    return secrets.token_hex(8)


class RequestOptions(BaseModel):
    """Options a request is created from.

    ``data`` is opaque to pybridge and handed back untouched.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    id: str = Field(default_factory=_new_request_id)
    data: Any = None

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must be non-empty")
        return value


class Request:
    """A single request with one terminal outcome.

    Must be created while an event loop is running; listeners added with
    :meth:`add_done_callback` are always scheduled on that loop, never called
    inline from :meth:`resolve` or :meth:`reject`.
    """

    def __init__(self, options: RequestOptions | dict[str, Any] | None = None) -> None:
        if options is None:
            options = RequestOptions()
        elif not isinstance(options, RequestOptions):
            options = RequestOptions.model_validate(options)
        self._options = options
        self._loop = asyncio.get_running_loop()
        self._state = RequestState.PENDING
        self._result: Any = None
        self._error: BaseException | None = None
        self._started_at = time.monotonic()
        self._settled_at: float | None = None
        self._listeners: list[Callable[[Request], None]] = []

    def __repr__(self) -> str:
        return f"<Request id={self.id} state={self._state}>"

    @property
    def id(self) -> str:
        return self._options.id

    @property
    def data(self) -> Any:
        return self._options.data

    @property
    def options(self) -> RequestOptions:
        return self._options

    @property
    def state(self) -> RequestState:
        return self._state

    def is_pending(self) -> bool:
        return self._state is RequestState.PENDING

    @property
    def result(self) -> Any:
        """Resolved value (``None`` unless resolved)."""
        return self._result

    @property
    def error(self) -> BaseException | None:
        """Rejection error (``None`` unless rejected)."""
        return self._error

    def get_duration(self) -> float:
        """Milliseconds since creation, frozen once the request settles."""
        end = self._settled_at if self._settled_at is not None else time.monotonic()
        return (end - self._started_at) * 1000.0

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def resolve(self, value: Any = None) -> None:
        self._settle(RequestState.RESOLVED, value, None)

    def reject(self, error: BaseException) -> None:
        self._settle(RequestState.REJECTED, None, error)

    def _settle(self, state: RequestState, value: Any, error: BaseException | None) -> None:
        if self._state is not RequestState.PENDING:
            raise RequestAlreadySettledError(
                f"Request {self.id} is already {self._state}",
                request_id=self.id,
            )
        self._state = state
        self._result = value
        self._error = error
        self._settled_at = time.monotonic()
        _logger.debug("Request %s %s after %.1fms", self.id, state, self.get_duration())

        listeners = self._listeners
        self._listeners = []
        for listener in listeners:
            self._loop.call_soon(listener, self)

    async def outcome_from(self, awaitable: Awaitable[Any]) -> None:
        """Settle from *awaitable*: resolve with its result or reject with its exception."""
        try:
            value = await awaitable
        except Exception as exc:
            self.reject(exc)
            return
        self.resolve(value)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def add_done_callback(self, fn: Callable[[Request], None]) -> None:
        """Call ``fn(request)`` on the loop once the request settles.

        Subscribing to an already settled request schedules *fn* right away.
        """
        if self._state is RequestState.PENDING:
            self._listeners.append(fn)
        else:
            self._loop.call_soon(fn, self)

    async def wait(self) -> Any:
        """Wait for settlement; return the value or raise the rejection error."""
        if self._state is RequestState.PENDING:
            future: asyncio.Future[None] = self._loop.create_future()

            def _wake(_request: Request) -> None:
                if not future.done():
                    future.set_result(None)

            self.add_done_callback(_wake)
            await future
        if self._state is RequestState.REJECTED:
            raise self._error  # type: ignore[misc]
        return self._result
