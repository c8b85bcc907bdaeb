# tests/property/settings.py
"""Standardized Hypothesis settings for property tests.

Usage:
    from tests.property.settings import STANDARD_SETTINGS

    @given(parts=text_deltas)
    @STANDARD_SETTINGS
    def test_something(parts):
        ...

Tiers:
- STANDARD_SETTINGS: 100 examples - Regular property tests
- SLOW_SETTINGS: 30 examples - Tests that run an event loop per example
"""

from hypothesis import settings

STANDARD_SETTINGS = settings(max_examples=100)

# Each example spins up an event loop and an HTTP client
SLOW_SETTINGS = settings(max_examples=30)
