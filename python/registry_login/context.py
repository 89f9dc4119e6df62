"""
Cancellation and deadline handling for login calls.

A LoginContext travels with a single login. Every network call the exchangers
make goes through LoginContext.run(), which returns as soon as the call
finishes, the deadline passes or the context is cancelled, whichever comes
first. Each call runs on its own daemon thread, so a call that never returns
holds up neither other logins nor interpreter exit.
"""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Any, Callable, Optional, TypeVar

from registry_login.constants import DEFAULT_TIMEOUT
from registry_login.errors import LoginCancelledError

T = TypeVar("T")

# How often a waiting caller re-checks for cancellation
POLL_INTERVAL = 0.05


class LoginContext:
    """Deadline and cancellation signal for one login"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, cancel_event: Optional[threading.Event] = None):
        """Initialize LoginContext

        Args:
            timeout: Seconds from now until the login is abandoned
            cancel_event: Event shared with the caller; setting it cancels the login
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got: {timeout}")
        self.timeout = float(timeout)
        self._deadline = time.monotonic() + self.timeout
        self._cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def done(self) -> bool:
        """Whether the context is cancelled or past its deadline"""
        return self._cancel_event.is_set() or time.monotonic() >= self._deadline

    def remaining(self) -> float:
        """Seconds left before the deadline

        Raises:
            LoginCancelledError: If the context is cancelled or past its deadline
        """
        if self._cancel_event.is_set():
            raise LoginCancelledError("context canceled")
        left = self._deadline - time.monotonic()
        if left <= 0:
            raise LoginCancelledError("context deadline exceeded")
        return left

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking call, giving up when the context ends

        The call itself keeps running on its thread until its own timeout
        fires, but the caller is released immediately.

        Raises:
            LoginCancelledError: If the context ends before the call completes
            Exception: Whatever ``fn`` raises
        """
        self.remaining()
        future = _start(fn, *args, **kwargs)
        try:
            while True:
                done, _ = wait([future], timeout=min(self.remaining(), POLL_INTERVAL), return_when=FIRST_COMPLETED)
                if done:
                    return future.result()
        except LoginCancelledError:
            future.cancel()
            raise


def _start(fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
    """Run fn on a new daemon thread, returning a future for its outcome"""
    future: "Future[T]" = Future()

    def target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)

    threading.Thread(target=target, name=f"registry-login-{getattr(fn, '__name__', 'call')}", daemon=True).start()
    return future


def ensure_context(ctx: Optional[LoginContext]) -> LoginContext:
    """Return ``ctx`` or a fresh context with the default timeout"""
    return ctx if ctx is not None else LoginContext()
