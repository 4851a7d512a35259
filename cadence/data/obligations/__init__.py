"""Obligations module - recurring item and debt account definitions."""
