# tests/conftest.py
"""Shared test fixtures and helpers.

Test doubles live in tests/helpers/doubles.py.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator

import pytest
from hypothesis import Phase, Verbosity, settings

import olakai.sdk
from olakai import runtime as runtime_state
from olakai.core.config import OlakaiSettings
from tests.helpers.doubles import RecordingReporter, make_settings

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sdk_settings() -> OlakaiSettings:
    return make_settings()


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture(autouse=True)
def _reset_sdk_state() -> Iterator[None]:
    """Every test starts and ends without an active runtime."""
    olakai.sdk._active = None
    runtime_state.clear()
    yield
    olakai.sdk._active = None
    runtime_state.clear()
