import logging
import sys
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_NAME = "app.log"


def configure_logging(log_dir: str = "logs", level: str = "INFO") -> Path:
    """
    Send records to stdout and to ``<log_dir>/app.log``.

    Called from ``create_app``, never on import. Returns the log file path.
    """
    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / LOG_FILE_NAME

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, delay=True)
        ]
    )
    return log_file


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
