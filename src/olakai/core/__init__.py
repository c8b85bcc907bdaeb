# src/olakai/core/__init__.py
"""Core infrastructure: configuration, logging and sanitization."""
