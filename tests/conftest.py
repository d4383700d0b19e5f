"""Shared fixtures for loot_gen tests."""

from __future__ import annotations

import pytest

from loot_gen.sim.content.registry import ContentRegistry


@pytest.fixture(scope="module")
def registry() -> ContentRegistry:
    """Module-scoped registry with the default catalog loaded once.

    Tests must not mutate it; build a fresh registry for custom content.
    """
    reg = ContentRegistry()
    reg.load_defaults()
    return reg


@pytest.fixture
def fresh_registry() -> ContentRegistry:
    """Function-scoped registry with the default catalog, safe to mutate."""
    reg = ContentRegistry()
    reg.load_defaults()
    return reg
