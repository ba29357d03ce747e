"""Logging and sanitization utilities."""
