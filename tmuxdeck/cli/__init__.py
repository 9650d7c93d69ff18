"""Command-line entry points for tmuxdeck."""
