#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Utils Module for StreamTree
Common utility functions used across the application
"""

from .config import load_configuration, save_configuration, get_config_value, set_config_value
from .logging_utils import setup_logging, setup_logging_from_config, flush_logs, log_exception

__all__ = [
    'load_configuration',
    'save_configuration',
    'get_config_value',
    'set_config_value',
    'setup_logging',
    'setup_logging_from_config',
    'flush_logs',
    'log_exception'
]
