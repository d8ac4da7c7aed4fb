"""Command-line interface for pincer."""
