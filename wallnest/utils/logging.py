import logging
import logging.config
import re
from pathlib import Path
from typing import Optional

# ANSI escape codes (colours, bold, ...)
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StripAnsiFilter(logging.Filter):
    """Remove ANSI colour codes from log records written to files."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if isinstance(record.msg, str):
            record.msg = ANSI_ESCAPE_RE.sub("", record.msg)
        return True


def attach_strip_ansi_to_file_handlers() -> None:
    """
    Attach StripAnsiFilter to every FileHandler on the root logger.

    Call after logging.config.fileConfig(...) so the handlers declared in
    logging.ini already exist.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            handler.addFilter(StripAnsiFilter())


def setup_logging(config_path: Path, level: Optional[str] = None) -> bool:
    """
    Configure logging from an ini file, falling back to basicConfig.

    Returns:
        bool: True when the ini file was used
    """
    if config_path.exists():
        logging.config.fileConfig(config_path, disable_existing_loggers=False)
        attach_strip_ansi_to_file_handlers()
        if level:
            logging.getLogger().setLevel(level.upper())
        return True

    logging.basicConfig(
        level=(level or "INFO").upper(),
        format=DEFAULT_LOG_FORMAT,
        datefmt=DEFAULT_DATE_FORMAT,
    )
    return False
