"""Shared fixtures."""

import pytest

from fakes import FakeClock


@pytest.fixture
def clock():
    """Virtual clock starting at t=0."""
    return FakeClock()
