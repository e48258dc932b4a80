"""
Progress and cancellation channel for long-running training jobs.

A `Monitor` carries human-readable progress lines from the trainer to any
number of listeners and owns the cooperative cancellation token polled by
the minimizer. Listener failures are logged and never abort training.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

MessageListener = Callable[[str], None]
ExceptionListener = Callable[[BaseException], None]


class OperationCanceledError(Exception):
    """Raised when a monitored operation observes a cancellation request."""


class Monitor:
    """
    Event sink plus cancellation token.

    Listeners are plain callables registered through `add_*_listener`.
    `execute` runs a job on a background thread so that `cancel` can be
    called from the owning thread.
    """

    def __init__(self):
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._message_listeners: List[MessageListener] = []
        self._warning_listeners: List[MessageListener] = []
        self._error_listeners: List[MessageListener] = []
        self._exception_listeners: List[ExceptionListener] = []
        self._complete_listeners: List[Callable[[], None]] = []

        self.is_canceled = False
        self.is_running = False
        self.result: Any = None
        self.total_messages = 0
        self.total_warnings = 0
        self.total_errors = 0
        self.total_exceptions = 0

    # ------------------------------------------------------------------
    # listeners
    # ------------------------------------------------------------------

    def add_message_listener(self, listener: MessageListener) -> None:
        self._message_listeners.append(listener)

    def add_warning_listener(self, listener: MessageListener) -> None:
        self._warning_listeners.append(listener)

    def add_error_listener(self, listener: MessageListener) -> None:
        self._error_listeners.append(listener)

    def add_exception_listener(self, listener: ExceptionListener) -> None:
        self._exception_listeners.append(listener)

    def add_complete_listener(self, listener: Callable[[], None]) -> None:
        self._complete_listeners.append(listener)

    # ------------------------------------------------------------------
    # cancellation
    # ------------------------------------------------------------------

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """
        Request cancellation and return immediately.

        A running job stops at its next poll; use `wait` to join it.
        """
        self._cancel_event.set()
        if self.is_running:
            self.is_canceled = True

    def throw_if_cancellation_requested(self) -> None:
        if self._cancel_event.is_set():
            raise OperationCanceledError("The operation was canceled.")

    # ------------------------------------------------------------------
    # notifications
    # ------------------------------------------------------------------

    def on_message(self, message: str) -> None:
        self.total_messages += 1
        self._notify(self._message_listeners, message)

    def on_warning(self, message: str) -> None:
        self.total_warnings += 1
        self._notify(self._warning_listeners, message)

    def on_error(self, message: str) -> None:
        self.total_errors += 1
        self._notify(self._error_listeners, message)

    def on_exception(self, exception: BaseException) -> None:
        self.total_exceptions += 1
        self._notify(self._exception_listeners, exception)

    def reset(self) -> None:
        self.total_messages = 0
        self.total_warnings = 0
        self.total_errors = 0
        self.total_exceptions = 0

    def _notify(self, listeners, payload) -> None:
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception as exc:
                logger.warning(f"Monitor listener {listener!r} failed: {exc}")

    # ------------------------------------------------------------------
    # background execution
    # ------------------------------------------------------------------

    def execute(self, job: Callable[["Monitor"], Any]) -> None:
        """Run `job(self)` on a background thread; see `wait` and `result`."""
        if self.is_running:
            raise RuntimeError("The monitor is already running a job.")

        def _run() -> None:
            self.is_running = True
            try:
                self.result = job(self)
            except OperationCanceledError:
                self.is_canceled = True
                logger.info("Monitored job was canceled")
            except Exception as exc:
                logger.exception("Monitored job failed")
                self.on_exception(exc)
            finally:
                self.is_running = False
                for listener in list(self._complete_listeners):
                    try:
                        listener()
                    except Exception as exc:
                        logger.warning(f"Monitor completion listener failed: {exc}")

        self.is_running = True
        self._thread = threading.Thread(target=_run, name="qnmaxent-monitor", daemon=True)
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
