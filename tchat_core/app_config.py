# tchat_core/app_config.py
import configparser
import logging
import os
from typing import Any, Optional, Type

from tchat_core.config_defs import *
from tchat_core.state_manager import ConnectionInfo

logger = logging.getLogger("tchat.config")


class AppConfig:
    def __init__(self, config_file_path: Optional[str] = None):
        self.BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.CONFIG_FILE_NAME = "tchat_config.ini"
        self.CONFIG_DIR = os.path.join(self.BASE_DIR, "config")
        self.CONFIG_FILE_PATH = config_file_path or os.path.join(self.CONFIG_DIR, self.CONFIG_FILE_NAME)
        self._config_parser = configparser.ConfigParser()
        self._load_config_file()
        self._load_all_settings()

    def _load_config_file(self):
        if os.path.exists(self.CONFIG_FILE_PATH):
            self._config_parser.read(self.CONFIG_FILE_PATH, encoding="utf-8")
        else:
            logger.info(f"Config file {self.CONFIG_FILE_PATH} not found, using defaults.")

    def _get_config_value(self, section: str, key: str, fallback: Any, value_type: Type = str) -> Any:
        if self._config_parser.has_section(section) and self._config_parser.has_option(section, key):
            try:
                if value_type == bool:
                    return self._config_parser.getboolean(section, key)
                elif value_type == int:
                    return self._config_parser.getint(section, key)
                elif value_type == float:
                    return self._config_parser.getfloat(section, key)
                value = self._config_parser.get(section, key)
                return value if value.strip() else fallback
            except (ValueError, configparser.Error):
                logger.warning(f"Invalid value for [{section}] {key}, using default {fallback!r}.")
                return fallback
        return fallback

    def _load_all_settings(self):
        self.server = self._get_config_value("Connection", "server", DEFAULT_SERVER, str)
        self.port = self._get_config_value("Connection", "port", DEFAULT_PORT, int)
        self.username = self._get_config_value("Connection", "username", DEFAULT_USERNAME, str)
        self.access_code = self._get_config_value("Connection", "access_code", DEFAULT_ACCESS_CODE, str)
        self.channel = self._get_config_value("Connection", "channel", DEFAULT_CHANNEL, str)
        self.initialize_on_start = self._get_config_value("Connection", "initialize_on_start", DEFAULT_INITIALIZE_ON_START, bool)
        self.tick_interval = self._get_config_value("Connection", "tick_interval", DEFAULT_TICK_INTERVAL, float)
        self.lines_per_interval = self._get_config_value("RateLimit", "lines_per_interval", DEFAULT_LINES_PER_INTERVAL, int)
        self.interval = self._get_config_value("RateLimit", "interval", DEFAULT_INTERVAL, float)
        self.help_command = self._get_config_value("Commands", "help_command", DEFAULT_HELP_COMMAND, str)
        self.log_enabled = self._get_config_value("Logging", "log_enabled", DEFAULT_LOG_ENABLED, bool)
        self.log_file = self._get_config_value("Logging", "log_file", DEFAULT_LOG_FILE, str)
        self.log_error_file = self._get_config_value("Logging", "log_error_file", DEFAULT_LOG_ERROR_FILE, str)
        log_level_raw = self._get_config_value("Logging", "log_level", DEFAULT_LOG_LEVEL, str)
        self.log_level_str = log_level_raw.split('#')[0].strip().upper()
        log_error_level_raw = self._get_config_value("Logging", "log_error_level", DEFAULT_LOG_ERROR_LEVEL, str)
        self.log_error_level_str = log_error_level_raw.split('#')[0].strip().upper()
        self.log_max_bytes = self._get_config_value("Logging", "log_max_bytes", DEFAULT_LOG_MAX_BYTES, int)
        self.log_backup_count = self._get_config_value("Logging", "log_backup_count", DEFAULT_LOG_BACKUP_COUNT, int)

    def get_connection_info(self) -> ConnectionInfo:
        return ConnectionInfo(
            server=self.server,
            port=self.port,
            username=self.username,
            access_code=self.access_code,
            channel=self.channel,
        )

    def get_log_level_int_from_str(self, level_str: str, default_level: int) -> int:
        level = getattr(logging, level_str.upper(), None)
        return level if isinstance(level, int) else default_level

    def rehash(self) -> bool:
        try:
            logger.info(f"Rehashing configuration from {self.CONFIG_FILE_PATH}...")
            self._config_parser = configparser.ConfigParser()
            self._load_config_file()
            self._load_all_settings()
            logger.info("Configuration rehashed successfully.")
            return True
        except configparser.Error as e:
            logger.error(f"Error during configuration rehash: {e}", exc_info=True)
            return False

    @property
    def log_level_int(self) -> int:
        return self.get_log_level_int_from_str(self.log_level_str, logging.INFO)

    @property
    def log_error_level_int(self) -> int:
        return self.get_log_level_int_from_str(self.log_error_level_str, logging.WARNING)
