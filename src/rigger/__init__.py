"""Rigger - parallel scenario runner for UI, API and database tests."""

__version__ = "0.1.0"
