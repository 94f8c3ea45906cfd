from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .errors import CancelledError, DeadlineExceededError


class Context:
    """Cooperative cancellation signal with an optional deadline.

    A child context is cancelled when its parent is; cancelling a child never
    affects the parent. Nothing is interrupted: callers poll ``error()`` or
    ``check()`` between units of work.
    """

    def __init__(
        self,
        *,
        deadline: float | None = None,
        parent: Context | None = None,
        now: Callable[[], float] | None = None,
    ) -> None:
        self._now = now or (parent._now if parent is not None else time.monotonic)
        self._parent = parent
        self._event = threading.Event()

        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline

    @classmethod
    def background(cls) -> Context:
        return cls()

    @classmethod
    def with_timeout(
        cls,
        seconds: float,
        *,
        parent: Context | None = None,
        now: Callable[[], float] | None = None,
    ) -> Context:
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        clock = now or (parent._now if parent is not None else time.monotonic)
        return cls(deadline=clock() + seconds, parent=parent, now=clock)

    def child(self) -> Context:
        return Context(parent=self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self.error() is not None

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._now())

    def error(self) -> CancelledError | None:
        if self._parent is not None:
            err = self._parent.error()
            if err is not None:
                return err
        if self._deadline is not None and self._now() >= self._deadline:
            return DeadlineExceededError("context deadline exceeded")
        if self._event.is_set():
            return CancelledError("context canceled")
        return None

    def check(self) -> None:
        err = self.error()
        if err is not None:
            raise err


def background() -> Context:
    return Context.background()
