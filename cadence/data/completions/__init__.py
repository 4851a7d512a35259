"""Completions module."""
