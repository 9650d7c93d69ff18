"""Core tmux control and event streaming."""
