import os
import signal
import sys
import threading

import pytest

from dummy_wallet.service.lifecycle import LifecycleController, LifecycleState


class FakeService:
    def __init__(self, fail_start=False, fail_stop=False):
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.started = threading.Event()
        self.released = threading.Event()
        self.stop_calls = 0

    def start(self):
        self.started.set()
        if self.fail_start:
            raise OSError("address already in use")
        self.released.wait(5)

    def stop(self):
        self.stop_calls += 1
        self.released.set()
        if self.fail_stop:
            raise RuntimeError("stuck")


def _run_in_background(controller):
    thread = threading.Thread(target=controller.run, kwargs={"install_signal_handlers": False})
    thread.start()
    return thread


def test_request_stop_stops_the_service_once(logger):
    service = FakeService()
    controller = LifecycleController(service, logger)
    thread = _run_in_background(controller)
    assert service.started.wait(5)

    controller.request_stop()
    controller.request_stop()
    thread.join(5)

    assert not thread.is_alive()
    assert service.stop_calls == 1
    assert controller.state is LifecycleState.STOPPED


def test_start_failure_triggers_shutdown(logger, caplog):
    caplog.set_level("INFO", logger="tests.dummy_wallet")
    service = FakeService(fail_start=True)
    controller = LifecycleController(service, logger)

    controller.run(install_signal_handlers=False)

    assert service.stop_calls == 1
    assert controller.state is LifecycleState.STOPPED
    assert "Failed to start HTTP server" in caplog.text
    assert "HTTP server stopped with success" in caplog.text


def test_stop_failure_is_reported_and_still_terminal(logger, caplog):
    caplog.set_level("INFO", logger="tests.dummy_wallet")
    service = FakeService(fail_stop=True)
    controller = LifecycleController(service, logger)
    thread = _run_in_background(controller)
    assert service.started.wait(5)

    controller.request_stop()
    thread.join(5)

    assert service.stop_calls == 1
    assert controller.state is LifecycleState.STOPPED
    assert "Failed to stop HTTP server" in caplog.text


def test_signal_and_failure_together_stop_once(logger):
    service = FakeService()
    controller = LifecycleController(service, logger)
    thread = _run_in_background(controller)
    assert service.started.wait(5)

    # The accept loop ends on its own while a signal arrives.
    service.released.set()
    controller._handle_signal(signal.SIGTERM, None)
    thread.join(5)

    assert service.stop_calls == 1
    assert controller.state is LifecycleState.STOPPED
    assert controller.cancelled


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
def test_sigterm_stops_the_service(logger):
    service = FakeService()
    controller = LifecycleController(service, logger)
    previous = signal.getsignal(signal.SIGTERM)

    def send_sigterm():
        service.started.wait(5)
        os.kill(os.getpid(), signal.SIGTERM)

    threading.Thread(target=send_sigterm).start()
    controller.run(install_signal_handlers=True)

    assert service.stop_calls == 1
    assert controller.state is LifecycleState.STOPPED
    assert signal.getsignal(signal.SIGTERM) == previous


def test_initial_state_is_starting(logger):
    controller = LifecycleController(FakeService(), logger)

    assert controller.state is LifecycleState.STARTING
    assert not controller.cancelled
