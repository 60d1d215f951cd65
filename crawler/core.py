"""
FILE DESCRIPTION: Foundational module for global configuration and logging.
KEY FUNCTIONS/CLASSES: setup_logger, CompanyFormatter, configuration constants
"""

import logging
import sys
import os
from datetime import datetime
from pathlib import Path
from dotenv import load_dotenv

# === CONFIGURATION SECTION ===

# Load .env from the project root before reading any setting
load_dotenv(Path(__file__).resolve().parents[1] / '.env')


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name, default=None):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


# Worker lanes per crawl
CRAWL_CONCURRENCY = int(os.getenv("CRAWL_CONCURRENCY", 5))

# Page budget offered when the prompt is left blank
DEFAULT_MAX_REQUESTS = int(os.getenv("DEFAULT_MAX_REQUESTS", 50))

# Navigation timeout per render attempt (seconds)
NAVIGATION_TIMEOUT = _env_float("NAVIGATION_TIMEOUT", 60.0)

# Optional wall-clock cap for a whole crawl (seconds). Unset = no cap.
MAX_CRAWL_SECONDS = _env_float("MAX_CRAWL_SECONDS")

# Extra time a caller waits on a render thread beyond the navigation timeout
RENDER_GRACE_SECONDS = _env_float("RENDER_GRACE_SECONDS", 15.0)

# Root of the datasets/ and exports/ directories
STORAGE_DIR = Path(os.getenv("STORAGE_DIR", Path.cwd() / "storage"))

# "playwright" (headless browser) or "static" (plain HTTP, no JavaScript)
CRAWLER_BACKEND = os.getenv("CRAWLER_BACKEND", "playwright").strip().lower()

HEADLESS = _env_bool("HEADLESS", True)

USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
)

# Top-level fields dropped from every exported record. "h1" only exists in
# datasets written by older releases.
EXCLUDED_EXPORT_FIELDS = tuple(
    f.strip() for f in os.getenv("EXCLUDED_EXPORT_FIELDS", "h1").split(",") if f.strip()
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE") or None


# === LOGGING SECTION ===

class CompanyFormatter(logging.Formatter):
    """
    FLOW: Receives a log record -> Extracts timestamp -> Formats according to company standard
    (e.g., [ Tue Jan 06 05:32:41 AM UTC 2026 ]) -> Prepends level and context -> Returns final string.
    """
    def format(self, record):
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%a %b %d %I:%M:%S %p UTC %Y")
        context = getattr(record, 'context', 'root')
        message = f"[ {timestamp} ] : {record.levelname} : {context} : {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logger(name="crawler", log_file=None, level=logging.INFO):
    """
    FLOW: Initializes/Retrieves logger -> Checks for existing handlers to prevent duplicates ->
    Sets propagation for child loggers -> Attaches Console and optional File handlers with CompanyFormatter.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    if name != "crawler":
        logger.propagate = True
        setup_logger("crawler", log_file=log_file, level=level)
        return logger

    formatter = CompanyFormatter()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler (optional)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# Global logger instance
logger = setup_logger(log_file=LOG_FILE, level=getattr(logging, LOG_LEVEL, logging.INFO))
