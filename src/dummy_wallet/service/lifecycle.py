"""Running the service until it's told to stop.

The service's blocking ``start()`` runs on a background thread while the
calling thread waits on a single cancellation event. Either an OS signal or
the background thread ending (the server failed or exited) sets that event.
The service's ``stop()`` is then called exactly once.
"""

from __future__ import annotations

import logging
import signal
import threading
from enum import Enum
from typing import Protocol

_SHUTDOWN_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGTERM", "SIGINT", "SIGQUIT")
    if hasattr(signal, name)
)


class Runnable(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class LifecycleState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class LifecycleController:
    """Start a service, wait for a stop request, stop it exactly once."""

    def __init__(
        self,
        service: Runnable,
        logger: logging.Logger,
        url: str | None = None,
    ) -> None:
        self.service = service
        self.logger = logger
        self.url = url
        self.state = LifecycleState.STARTING
        self._cancelled = threading.Event()
        self._stop_lock = threading.Lock()
        self._stopped = False
        self._thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def request_stop(self) -> None:
        """Ask the controller to stop the service. Safe to call repeatedly."""
        self._cancelled.set()

    def run(self, install_signal_handlers: bool = True) -> None:
        """Block until the service is stopped.

        Signal handlers can only be installed from the main thread.
        """
        previous = self._install_signal_handlers() if install_signal_handlers else {}
        try:
            self._thread = threading.Thread(
                target=self._serve, name="dummy-wallet-service", daemon=True
            )
            self._thread.start()
            self.state = LifecycleState.RUNNING
            self._cancelled.wait()
        finally:
            self._stop()
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _serve(self) -> None:
        try:
            if self.url:
                self.logger.info(f"Starting HTTP service (url={self.url})")
            self.service.start()
        except Exception as err:
            self.logger.error(f"Failed to start HTTP server (error={err})")
        finally:
            self._cancelled.set()

    def _handle_signal(self, signum, frame) -> None:
        if self._cancelled.is_set():
            return
        self.logger.info(f"Caught signal (signal={signal.Signals(signum).name})")
        self._cancelled.set()

    def _install_signal_handlers(self) -> dict:
        previous = {}
        for sig in _SHUTDOWN_SIGNALS:
            previous[sig] = signal.signal(sig, self._handle_signal)
        return previous

    def _stop(self) -> None:
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True

        self._cancelled.set()
        self.state = LifecycleState.STOPPING
        try:
            self.service.stop()
        except Exception as err:
            self.logger.error(f"Failed to stop HTTP server (error={err})")
        else:
            self.logger.info("HTTP server stopped with success")
        finally:
            self.state = LifecycleState.STOPPED
