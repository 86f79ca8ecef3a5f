"""Fixtures for the engine tests."""

from __future__ import annotations

from datetime import datetime

import pytest
from pipeline_samples import DECLARATIVE, FIXED_TIME, FRAGMENT, SCRIPTED


@pytest.fixture
def declarative_script() -> str:
    return DECLARATIVE


@pytest.fixture
def scripted_script() -> str:
    return SCRIPTED


@pytest.fixture
def fragment_script() -> str:
    return FRAGMENT


@pytest.fixture
def fixed_time() -> datetime:
    return FIXED_TIME
