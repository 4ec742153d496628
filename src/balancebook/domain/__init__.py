"""Domain layer for balancebook application."""
