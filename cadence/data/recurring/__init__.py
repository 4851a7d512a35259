"""Recurring module."""
