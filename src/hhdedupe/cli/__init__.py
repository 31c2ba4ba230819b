"""Command-line interface for hhdedupe."""
