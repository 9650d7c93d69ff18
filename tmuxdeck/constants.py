"""Constants used across tmuxdeck.

This module defines shared constants to ensure consistency.
"""

# Connection routing
LOCAL_CONNECTION_ID = "local"

# tmux listing protocol
FIELD_SEPARATOR = ":"

# Mouse mode config line (appended to the per-user tmux config)
MOUSE_CONFIG_LINE = "set -g mouse on"
MOUSE_CONFIG_PATTERN = r"^set.*-g.*mouse.*on"

# Event stream internal settings (not user-configurable)
EVENTS_PATH = "/api/events"
RECONNECT_INITIAL_DELAY_S = 3.0  # Initial reconnect delay in seconds
RECONNECT_MAX_DELAY_S = 30.0  # Maximum reconnect delay
RECONNECT_BACKOFF_MULTIPLIER = 2.0  # Exponential backoff multiplier

# Defaults for user-configurable settings
DEFAULT_SERVER_URL = "http://localhost:3456"
DEFAULT_TMUX_CONFIG_FILE = "~/.tmux.conf"
DEFAULT_RESIZE_AMOUNT = 5
DEFAULT_CONNECT_TIMEOUT_S = 10.0
