"""
Logging setup for project-gen runs
"""

import logging
import os
from datetime import datetime
from pathlib import Path

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Marks handlers installed here so repeated setup calls replace them
_HANDLER_TAG = '_projectgen_handler'


def setup_generation_logging(log_file: str = None, verbose: bool = False, log_dir: str = "logs") -> logging.Logger:
    """Setup structured logging for a generation process"""
    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"{log_dir}/projectgen_{timestamp}.log"

    # Create logs directory if it doesn't exist
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    debug = verbose or os.getenv('DEBUG', '').lower() == 'true'
    level = logging.DEBUG if debug else logging.INFO

    # Setup file handler
    file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    file_handler.setLevel(level)

    # Console stays quieter unless debugging
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level if debug else logging.WARNING)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    gen_logger = logging.getLogger('projectgen')
    for handler in list(gen_logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            gen_logger.removeHandler(handler)
            handler.close()

    for handler in (file_handler, console_handler):
        setattr(handler, _HANDLER_TAG, True)
        gen_logger.addHandler(handler)
    gen_logger.setLevel(level)

    gen_logger.debug(f"📝 Logging to {log_path}")
    return gen_logger
