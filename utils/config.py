#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Configuration Module for StreamTree
Handles loading, validating, and saving application configuration
"""

import os
import copy
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "application": {
        "name": "StreamTree",
        "version": "1.0.0",
        "log_dir": "logs"
    },

    "hoeffding_tree": {
        "leaf_prediction": "nba",  # Options: "mc", "nb", "nba"
        "nb_threshold": 0.0,  # Leaf weight needed before naive Bayes votes
        "binary_only": False,
        "pre_prune": False,
        "split_criterion": "info_gain",  # Options: "info_gain", "gini"
        "numeric_bins": 10  # Split point candidates per numeric feature
    },

    "stream": {
        "batch_size": 1000,
        "label_column": None,
        "weight_column": None
    },

    "parallel": {
        "n_jobs": -2,  # joblib convention, -2 = all cores but one
        "backend": "threading"
    },

    "logging": {
        "level": "INFO",
        "console": True
    }
}

def get_config_path() -> Path:
    """
    Get the path to the configuration file

    Returns:
        Path to the configuration file
    """
    script_dir = Path(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    config_path = script_dir / "config.json"

    return config_path

def load_configuration(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to defaults if not found

    Args:
        config_path: Configuration file (default: config.json in the app directory,
            which is created with the defaults when missing)

    Returns:
        Configuration dictionary
    """
    save_defaults = config_path is None
    config_path = get_config_path() if config_path is None else Path(config_path)

    try:
        if config_path.exists():
            logger.info(f"Loading configuration from {config_path}")

            with open(config_path, 'r') as f:
                user_config = json.load(f)

            config = merge_configs(DEFAULT_CONFIG, user_config)

            logger.info("Configuration loaded successfully")
        else:
            logger.info("No configuration file found, using defaults")
            config = copy.deepcopy(DEFAULT_CONFIG)

            if save_defaults:
                save_configuration(config, config_path)

        validate_configuration(config)

        return config

    except Exception as e:
        logger.error(f"Error loading configuration: {str(e)}", exc_info=True)
        logger.warning("Falling back to default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

def save_configuration(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Save configuration to file

    Args:
        config: Configuration dictionary
        config_path: Target file (default: config.json in the app directory)

    Returns:
        True if saved successfully, False otherwise
    """
    config_path = get_config_path() if config_path is None else Path(config_path)

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w') as f:
            json.dump(config, f, indent=4)

        logger.info(f"Configuration saved to {config_path}")
        return True

    except Exception as e:
        logger.error(f"Error saving configuration: {str(e)}", exc_info=True)
        return False

def merge_configs(default_config: Dict[str, Any], user_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge user configuration with defaults

    Args:
        default_config: Default configuration dictionary
        user_config: User configuration dictionary

    Returns:
        Merged configuration dictionary (the inputs are not modified)
    """
    merged = copy.deepcopy(default_config)

    for key, value in user_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged

def validate_configuration(config: Dict[str, Any]) -> bool:
    """
    Validate configuration values and log warnings for invalid settings

    Invalid values are replaced by their defaults.

    Args:
        config: Configuration dictionary

    Returns:
        True if all values are valid, False otherwise
    """
    valid = True

    tree_config = config.setdefault('hoeffding_tree', {})
    tree_defaults = DEFAULT_CONFIG['hoeffding_tree']

    for param, options in [
        ('leaf_prediction', ['mc', 'nb', 'nba']),
        ('split_criterion', ['info_gain', 'gini'])
    ]:
        value = tree_config.get(param)
        if value not in options:
            logger.warning(f"Invalid {param}: {value}, using '{tree_defaults[param]}' instead")
            tree_config[param] = tree_defaults[param]
            valid = False

    for param in ['binary_only', 'pre_prune']:
        value = tree_config.get(param)
        if not isinstance(value, bool):
            logger.warning(f"Invalid {param}: {value}, using {tree_defaults[param]} instead")
            tree_config[param] = tree_defaults[param]
            valid = False

    nb_threshold = tree_config.get('nb_threshold')
    if isinstance(nb_threshold, bool) or not isinstance(nb_threshold, (int, float)) or nb_threshold < 0:
        logger.warning(f"Invalid nb_threshold: {nb_threshold}, using {tree_defaults['nb_threshold']} instead")
        tree_config['nb_threshold'] = tree_defaults['nb_threshold']
        valid = False

    config.setdefault('stream', {})

    for key_path in ['hoeffding_tree.numeric_bins', 'stream.batch_size']:
        value = get_config_value(config, key_path)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            default = get_config_value(DEFAULT_CONFIG, key_path)
            logger.warning(f"Invalid {key_path}: {value}, using {default} instead")
            set_config_value(config, key_path, default)
            valid = False

    parallel_config = config.setdefault('parallel', {})

    n_jobs = parallel_config.get('n_jobs')
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs == 0:
        logger.warning(f"Invalid n_jobs: {n_jobs}, using {DEFAULT_CONFIG['parallel']['n_jobs']} instead")
        parallel_config['n_jobs'] = DEFAULT_CONFIG['parallel']['n_jobs']
        valid = False

    if parallel_config.get('backend') not in ['threading', 'loky', 'sequential']:
        logger.warning(f"Invalid backend: {parallel_config.get('backend')}, using 'threading' instead")
        parallel_config['backend'] = 'threading'
        valid = False

    logging_config = config.setdefault('logging', {})

    if str(logging_config.get('level')).upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
        logger.warning(f"Invalid log level: {logging_config.get('level')}, using 'INFO' instead")
        logging_config['level'] = 'INFO'
        valid = False

    return valid

def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a configuration value using dot notation for nested dictionaries

    Args:
        config: Configuration dictionary
        key_path: Key path using dot notation (e.g., 'hoeffding_tree.nb_threshold')
        default: Default value if key not found

    Returns:
        Configuration value or default if not found
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default

def set_config_value(config: Dict[str, Any], key_path: str, value: Any) -> bool:
    """
    Set a configuration value using dot notation for nested dictionaries

    Args:
        config: Configuration dictionary
        key_path: Key path using dot notation (e.g., 'stream.batch_size')
        value: Value to set

    Returns:
        True if successful, False otherwise
    """
    keys = key_path.split('.')
    target = config

    try:
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]

        target[keys[-1]] = value
        return True
    except Exception as e:
        logger.error(f"Error setting config value {key_path}: {str(e)}")
        return False
