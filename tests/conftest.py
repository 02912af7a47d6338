from __future__ import annotations

import pytest

from .doubles import FakeClock


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def url() -> str:
    return "http://benchmark.invalid/resource.js"
