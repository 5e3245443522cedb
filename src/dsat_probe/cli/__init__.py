"""Command-line interface for DSAT token probing."""
