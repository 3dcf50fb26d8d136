"""Tests for the one-shot lifecycle controller."""

from __future__ import annotations

import threading
from types import SimpleNamespace

from keyloader.server.lifecycle import LifecycleController


class TestTryMarkUnlocked:
    def test_initially_locked(self, controller: LifecycleController) -> None:
        assert controller.unlocked is False
        assert controller.shutdown_requested is False

    def test_first_caller_wins(self, controller: LifecycleController) -> None:
        assert controller.try_mark_unlocked() is True
        assert controller.unlocked is True
        assert controller.try_mark_unlocked() is False
        assert controller.unlocked is True

    def test_single_winner_across_threads(self, controller: LifecycleController) -> None:
        results: list[bool] = []
        barrier = threading.Barrier(16)

        def contend() -> None:
            barrier.wait()
            results.append(controller.try_mark_unlocked())

        threads = [threading.Thread(target=contend) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == 15


class TestRequestShutdown:
    def test_ignored_while_locked(self, controller: LifecycleController) -> None:
        server = SimpleNamespace(should_exit=False)
        controller.attach(server)
        assert controller.request_shutdown() is False
        assert server.should_exit is False
        assert controller.shutdown_requested is False

    def test_stops_attached_server_once(self, controller: LifecycleController) -> None:
        server = SimpleNamespace(should_exit=False)
        controller.attach(server)
        controller.try_mark_unlocked()

        assert controller.request_shutdown() is True
        assert server.should_exit is True
        assert controller.shutdown_requested is True

        assert controller.request_shutdown() is False

    def test_without_server(self, controller: LifecycleController) -> None:
        controller.try_mark_unlocked()
        assert controller.request_shutdown() is True
        assert controller.shutdown_requested is True
