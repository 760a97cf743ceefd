"""Command-line interface for oeekit."""
