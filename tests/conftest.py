"""Shared test fixtures for the keyloader test suite.

Provides a scriptable unlock backend and a fresh lifecycle controller
per test.
"""

from __future__ import annotations

import pytest

from keyloader.server.lifecycle import LifecycleController
from tests.stubs import StubInvoker


@pytest.fixture
def stub_invoker() -> StubInvoker:
    return StubInvoker()


@pytest.fixture
def controller() -> LifecycleController:
    return LifecycleController()
