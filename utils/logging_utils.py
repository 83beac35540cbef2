#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Logging Utilities for StreamTree
Root logger setup for stream runs: console output plus one rotating log file
per run
"""

import os
import sys
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_PREFIX = 'stream_tree'

def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return level

def run_log_file(log_dir: Union[str, Path]) -> Path:
    """Path of the log file for a run started now"""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return Path(log_dir) / f'{LOG_FILE_PREFIX}_{timestamp}.log'

def setup_logging(log_dir: Optional[Union[str, Path]] = None,
                 log_level: Union[int, str] = logging.INFO,
                 enable_console: bool = True,
                 max_log_size: int = 10485760,  # 10MB
                 backup_count: int = 5) -> logging.Logger:
    """
    Replace the root logger's handlers with a console handler and a rotating
    file handler for this run

    Args:
        log_dir: Directory for log files (default: 'logs' in app directory)
        log_level: Logging level or its name
        enable_console: Also log to stdout
        max_log_size: Bytes before the log file rotates
        backup_count: Rotated files to keep

    Returns:
        Configured root logger
    """
    level = _resolve_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    handlers = []

    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if log_dir is None:
        log_dir = Path(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))) / 'logs'
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = run_log_file(log_dir)
    handlers.append(logging.handlers.RotatingFileHandler(
        filename=log_file, maxBytes=max_log_size, backupCount=backup_count, encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).info(f"Logging to {log_file} at {logging.getLevelName(level)}")
    return root_logger

def setup_logging_from_config(config: Dict[str, Any]) -> logging.Logger:
    """
    Set up logging from the 'application' and 'logging' configuration sections

    Args:
        config: Validated application configuration

    Returns:
        Configured root logger
    """
    logging_config = config.get('logging', {})
    return setup_logging(
        log_dir=config.get('application', {}).get('log_dir'),
        log_level=logging_config.get('level', 'INFO'),
        enable_console=logging_config.get('console', True)
    )

def flush_logs() -> None:
    """Flush the root logger's handlers before the process exits"""
    for handler in logging.getLogger().handlers:
        try:
            handler.flush()
        except Exception as e:
            print(f"Error flushing log handler: {str(e)}", file=sys.stderr)

def log_exception(e: Exception, context: str, logger: Optional[logging.Logger] = None) -> None:
    """
    Log a failed operation with its traceback

    Args:
        e: Exception raised by the operation
        context: What was being done, e.g. "Error running stream"
        logger: Logger to use (defaults to the root logger)
    """
    (logger or logging.getLogger()).error(f"{context}: {type(e).__name__}: {str(e)}", exc_info=True)
