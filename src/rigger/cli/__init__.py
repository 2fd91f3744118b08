"""Command line interface for Rigger."""
