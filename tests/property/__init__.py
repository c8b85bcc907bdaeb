# tests/property/__init__.py
"""Property-based tests for the Olakai SDK.

Covers invariants that must hold for all inputs: stream accumulation
completes exactly once, metadata merges never lose data, and delivery
backoff stays within its bounds.
"""
