import logging
import logging.handlers
from campus.config import log_file_path
from campus.settings import settings


def setup_logging(
    log_file_path: str, enable_console_logging: bool = True, log_level: str = "INFO"
):
    """
    Set up file and console logging for the application.

    Args:
        log_file_path: Path to the log file
        enable_console_logging: Whether to also output logs to console (not needed if uvicorn handles it)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Only add file handler if not already present (avoid duplicates on reload)
    has_file_handler = any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        and h.baseFilename == log_file_path
        for h in root_logger.handlers
    )

    if not has_file_handler:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if enable_console_logging and not any(
        type(h) is logging.StreamHandler for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Keep third-party clients quiet unless something goes wrong
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger


# File logging only (uvicorn handles the console)
logger = setup_logging(
    log_file_path, enable_console_logging=False, log_level=settings.log_level
)
