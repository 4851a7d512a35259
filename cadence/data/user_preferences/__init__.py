"""User preferences module."""
