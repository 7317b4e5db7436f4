from typing import Optional

# --- Default Fallback Constants ---
# These are used as fallbacks if values are not found in the INI file.

# Connection
DEFAULT_SERVER = "irc.twitch.tv"
DEFAULT_PORT = 6667
DEFAULT_USERNAME: Optional[str] = None
DEFAULT_ACCESS_CODE: Optional[str] = None
DEFAULT_CHANNEL: Optional[str] = None
DEFAULT_INITIALIZE_ON_START = False
DEFAULT_TICK_INTERVAL = 0.1  # seconds between queue drains

# Rate limit (Twitch: 20 lines / 30s for regular users, 15 keeps headroom)
DEFAULT_LINES_PER_INTERVAL = 15
DEFAULT_INTERVAL = 30.0

# Commands
DEFAULT_HELP_COMMAND = "!help"

# Logging
DEFAULT_LOG_ENABLED = True
DEFAULT_LOG_FILE = "tchat.log"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_ERROR_FILE = "tchat_error.log"
DEFAULT_LOG_ERROR_LEVEL = "WARNING"
DEFAULT_LOG_MAX_BYTES = 1024 * 1024 * 5
DEFAULT_LOG_BACKUP_COUNT = 3

# Handshake lines written by initialize(); they count against the first window
HANDSHAKE_LINE_COUNT = 4
