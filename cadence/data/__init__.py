"""Data module - obligation definitions, transactions, preferences and completions."""
