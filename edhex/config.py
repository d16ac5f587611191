# -*- coding: utf-8 -*-
# edhex is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
"""Configuration loading (TOML over built-in defaults) and logging setup."""

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Dict, Optional

import toml

from edhex.state import Preferences

logger = logging.getLogger(__name__)


# --- Locations ---
def config_dir() -> str:
    """``$XDG_CONFIG_HOME/edhex``, or ``~/.config/edhex`` when the variable is unset."""
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, "edhex")


def preferences_file_path() -> str:
    return os.path.join(config_dir(), "preferences.toml")


def default_log_path() -> str:
    base = os.environ.get("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, "edhex", "edhex.log")


# --- Merging ---
def deep_merge(base: Dict[Any, Any], override: Dict[Any, Any]) -> Dict[Any, Any]:
    """
    Returns ``base`` overlaid with ``override``; neither argument is modified.

    Tables present in both are merged key by key. Any other value from
    ``override`` wins.

    Example:
        >>> deep_merge({'display': {'width': 16, 'radix': 16}}, {'display': {'width': 8}})
        {'display': {'width': 8, 'radix': 16}}
    """
    merged = {**base, **override}
    for key in base.keys() & override.keys():
        if isinstance(base[key], dict) and isinstance(override[key], dict):
            merged[key] = deep_merge(base[key], override[key])
    return merged


def known_settings(user_config: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drops the tables and keys of ``user_config`` that edhex has no default for.

    Each dropped name is logged once, so a typo such as ``widht`` shows up in
    the log instead of being silently ignored.
    """
    kept: Dict[str, Any] = {}
    for section, value in user_config.items():
        if section not in defaults:
            logger.warning("Ignoring unknown config table [%s]", section)
            continue
        if not isinstance(value, dict):
            kept[section] = value
            continue
        unknown = sorted(set(value) - set(defaults[section]))
        for key in unknown:
            logger.warning("Ignoring unknown setting '%s' in [%s]", key, section)
        kept[section] = {key: val for key, val in value.items() if key not in unknown}
    return kept


def default_config() -> Dict[str, Any]:
    return {
        "display": Preferences().to_mapping(),
        "logging": {
            "file_level": "INFO",
            "console_level": "WARNING",
            "log_to_console": True,
            "log_file": default_log_path(),
        },
    }


# --- Configuration Loading ---
def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the preferences file and merges it over the built-in defaults.

    Three steps, mirroring how the file is meant to be edited by hand:

    1. Start from :func:`default_config`.
    2. If the TOML file exists, parse it and deep-merge it on top.
    3. Check the ``[display]`` table; if any value is unusable, log why and
       fall back to the default display settings.

    Missing files, TOML syntax errors and I/O errors are logged and replaced by
    defaults, so this function never raises.

    Args:
        config_path (Optional[str]): File to read. Defaults to
            :func:`preferences_file_path`.

    Returns:
        dict: The merged configuration with ``display`` and ``logging`` tables.
    """
    defaults = default_config()
    if config_path is None:
        config_path = preferences_file_path()
    user_config: Dict[str, Any] = {}

    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                user_config = toml.loads(fh.read())
            logger.debug("Loaded user config from %s", config_path)
        except toml.TomlDecodeError as exc:
            logger.error("TOML parse error in %s: %s - using defaults.", config_path, exc)
        except OSError as exc:
            logger.error("Could not read %s: %s - using defaults.", config_path, exc)
    else:
        logger.debug("Config file %s not found - using defaults.", config_path)

    final_config = deep_merge(defaults, known_settings(user_config, defaults))

    for section, default_val in defaults.items():
        if not isinstance(final_config.get(section), dict):
            logger.warning("Config section [%s] is not a table - using defaults.", section)
            final_config[section] = default_val

    try:
        Preferences.from_mapping(final_config["display"])
    except ValueError as exc:
        logger.warning("Bad [display] settings in %s: %s - using defaults.", config_path, exc)
        final_config["display"] = defaults["display"]

    return final_config


def preferences_from_config(config: Dict[str, Any]) -> Preferences:
    """The validated display preferences of a config returned by :func:`load_config`."""
    return Preferences.from_mapping(config.get("display", {}))


# --- Logging Setup ---
def setup_logging(config: Optional[Dict[str, Any]] = None) -> None:
    """
    Configures the root logger from the ``[logging]`` table of ``config``.

    Up to two handlers are attached:

    1. **File handler**: a rotating log (``log_file``, 1 MiB x 3) at
       ``file_level``. If its directory cannot be created, the log goes to
       the system temp directory instead.
    2. **Console handler**: ``stderr`` at ``console_level`` when
       ``log_to_console`` is true. Standard output is never used, since it
       carries the editor's own output.

    Existing root handlers are removed first so repeated calls (tests, ``r``)
    do not duplicate records. Never raises; setup problems go to ``stderr``.
    """
    if config is None:
        config = {}
    logging_config = config.get("logging", {})
    file_level_str = str(logging_config.get("file_level", "INFO")).upper()
    file_level = getattr(logging, file_level_str, logging.INFO)

    log_filename = logging_config.get("log_file") or default_log_path()
    log_dir = os.path.dirname(log_filename)
    if log_dir and not os.path.exists(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError as e_mkdir:
            print(f"Error creating log directory '{log_dir}': {e_mkdir}", file=sys.stderr)
            log_filename = os.path.join(tempfile.gettempdir(), "edhex.log")

    file_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)-8s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"
    )
    file_handler = None
    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_filename, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(file_level)
    except OSError as e_fh:
        print(f"Error setting up file logger for '{log_filename}': {e_fh}. File logging disabled.",
              file=sys.stderr)

    console_handler = None
    console_level = logging.WARNING
    if logging_config.get("log_to_console", True):
        console_level_str = str(logging_config.get("console_level", "WARNING")).upper()
        console_level = getattr(logging, console_level_str, logging.WARNING)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter("%(levelname)-8s - %(name)-12s - %(message)s"))
        console_handler.setLevel(console_level)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if file_handler:
        root_logger.addHandler(file_handler)
    if console_handler:
        root_logger.addHandler(console_handler)

    levels = [file_level] if file_handler else []
    if console_handler:
        levels.append(console_level)
    root_logger.setLevel(min(levels) if levels else logging.WARNING)

    logger.debug("Logging setup complete. Root logger level: %s.", logging.getLevelName(root_logger.level))
    if file_handler:
        logger.debug("File logging to '%s' at level %s.", log_filename, logging.getLevelName(file_level))
