"""Pytest configuration and shared fixtures for dbaccess tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from dbaccess.runtime import ModelAccessConfig, TransactionController, reset
from tests.helpers import FakePool

# =============================================================================
# Duck Typing Conformance Helpers
# =============================================================================


def assert_has_methods(
    obj: object,
    required_methods: list[str],
    *,
    protocol_name: str | None = None,
) -> None:
    """Assert that an object has all required methods (duck typing conformance).

    Args:
        obj: The object to check for method presence.
        required_methods: List of method names that must be present and callable.
        protocol_name: Optional protocol name for clearer error messages.

    Raises:
        AssertionError: If any required method is missing or not callable.
    """
    name = protocol_name or obj.__class__.__name__
    for method_name in required_methods:
        assert hasattr(obj, method_name), f"{name} must have '{method_name}' method"
        assert callable(
            getattr(obj, method_name)
        ), f"{name}.{method_name} must be callable"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_pool() -> FakePool:
    """Fresh scriptable pool per test."""
    return FakePool()


@pytest.fixture
def make_controller(
    fake_pool: FakePool,
) -> Callable[..., TransactionController]:
    """Factory building a controller over ``fake_pool``.

    Example:
        >>> def test_slow(make_controller):
        ...     controller = make_controller(slow_sql_threshold_seconds=0.05)
    """

    def _make(**options: Any) -> TransactionController:
        return TransactionController(ModelAccessConfig(pool=fake_pool, **options))

    return _make


@pytest.fixture
def controller(
    make_controller: Callable[..., TransactionController],
) -> TransactionController:
    """Controller with default configuration over ``fake_pool``."""
    return make_controller()


@pytest.fixture
def reset_default_access() -> Iterator[None]:
    """Forget the module-level configuration before and after the test."""
    reset()
    yield
    reset()
