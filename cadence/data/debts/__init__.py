"""Debts module."""
