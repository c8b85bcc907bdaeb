# tests/property/olakai/__init__.py
"""Property tests for SDK delivery, metadata and stream accumulation."""
