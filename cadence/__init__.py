"""Cadence - recurring obligation scheduling and completion tracking."""
