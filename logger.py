# logger.py
import os
import logging
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "pos_terminal"

# Default logging configuration
DEFAULT_CONFIG = {
    "level": "INFO",
    "file": "logs/pos.log",
    "max_size": 1048576,  # 1MB
    "backup_count": 3
}

# Mapping of string log levels to logging constants
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}


def setup_logger(config=None):
    """Set up the terminal logger: console plus a rotating log file."""
    if config is None:
        config = {}

    # Merge with default config
    log_config = {**DEFAULT_CONFIG, **config.get("logging", {})}

    # Create logger
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(LOG_LEVELS.get(str(log_config["level"]).upper(), logging.INFO))

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Create console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Create file handler
    if log_config["file"]:
        try:
            # Ensure log directory exists
            log_dir = os.path.dirname(log_config["file"])
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_config["file"],
                maxBytes=log_config["max_size"],
                backupCount=log_config["backup_count"]
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except Exception as e:
            logger.error(f"Failed to set up file logging: {str(e)}")

    return logger


def configure_logger(config):
    """Reconfigure the logger with new settings."""
    logger = logging.getLogger(LOGGER_NAME)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    # Set up with new config
    return setup_logger(config)
