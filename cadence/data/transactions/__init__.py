"""Transactions module."""
