"""Command-line interface for balancebook."""
