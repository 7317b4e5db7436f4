# tchat.py
import argparse
import asyncio
import logging
import logging.handlers
import os
import sys
from typing import List, Optional

from tchat_core.app_config import AppConfig
from tchat_core.client.chat_client_logic import ChatClientLogic
from tchat_core.connector_registry import ConnectorRegistry

main_logger = logging.getLogger("tchat.main_app")


def setup_logging(config: AppConfig):
    """Set up logging for the application using the config object."""
    if not config.log_enabled:
        logging.disable(logging.CRITICAL + 1)
        print("Logging is disabled in configuration.")
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear existing handlers to prevent duplication on rehash
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    log_dir = os.path.join(config.BASE_DIR, "logs")
    if not os.path.exists(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError as e:
            print(f"Error creating log directory {log_dir}: {e}. Logging to project root.")
            log_dir = config.BASE_DIR

    try:
        full_log_path = os.path.join(log_dir, config.log_file)
        full_handler = logging.handlers.RotatingFileHandler(
            full_log_path,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        full_handler.setFormatter(formatter)
        full_handler.setLevel(config.log_level_int)
        root_logger.addHandler(full_handler)

        error_log_path = os.path.join(log_dir, config.log_error_file)
        error_handler = logging.handlers.RotatingFileHandler(
            error_log_path,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        error_handler.setFormatter(formatter)
        error_handler.setLevel(config.log_error_level_int)
        root_logger.addHandler(error_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.setLevel(logging.INFO)
        root_logger.addHandler(console_handler)

        # Sub-loggers (tchat.network, tchat.commands, ...) inherit this level
        tchat_base_logger = logging.getLogger("tchat")
        tchat_base_logger.setLevel(config.log_level_int)
        tchat_base_logger.info(f"Logging initialized. Full log: {full_log_path}, Error log: {error_log_path}")

    except OSError as e:
        print(f"Failed to initialize file logging: {e}")
        logging.basicConfig(
            level=config.log_level_int,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=[logging.StreamHandler(sys.stdout)]
        )
        logging.getLogger("tchat").error(f"File logging setup failed. Using basic console logging. Error: {e}")


def parse_arguments(config: AppConfig, argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="tChat chat command connector")
    parser.add_argument("--config", default=None, help=f"Path to the INI config file. (Default: {config.CONFIG_FILE_PATH})")
    parser.add_argument("--server", default=None, help=f"Chat server address. Overrides config. (Default: {config.server})")
    parser.add_argument("--port", type=int, default=None, help=f"Chat server port. Overrides config. (Default: {config.port})")
    parser.add_argument("--username", default=None, help="Login name. Overrides config.")
    parser.add_argument("--token", default=None, help="OAuth access code, without the 'oauth:' prefix. Overrides config.")
    parser.add_argument("--channel", default=None, help="Channel to join, with or without '#'. Overrides config.")
    parser.add_argument(
        "--connect",
        action=argparse.BooleanOptionalAction,
        default=None,
        help=f"Connect on start. Overrides config. (Default: {config.initialize_on_start})",
    )
    return parser.parse_args(argv)


def apply_arguments(config: AppConfig, args: argparse.Namespace) -> None:
    if args.server is not None:
        config.server = args.server
    if args.port is not None:
        config.port = args.port
    if args.username is not None:
        config.username = args.username
    if args.token is not None:
        config.access_code = args.token
    if args.channel is not None:
        config.channel = args.channel
    if args.connect is not None:
        config.initialize_on_start = args.connect


def main(argv: Optional[List[str]] = None):
    app_config = AppConfig()
    args = parse_arguments(app_config, argv)
    if args.config:
        app_config = AppConfig(args.config)
    apply_arguments(app_config, args)

    setup_logging(app_config)
    main_logger.info("Starting tChat application.")

    registry = ConnectorRegistry()
    client = ChatClientLogic(app_config, registry)
    try:
        asyncio.run(client.run_main_loop())
    except KeyboardInterrupt:
        main_logger.info("Keyboard interrupt received. Client shutdown handled by run_main_loop.")
        client.request_shutdown("KeyboardInterrupt")
    finally:
        main_logger.info("tChat shutdown sequence in main() complete.")


if __name__ == "__main__":
    main()
