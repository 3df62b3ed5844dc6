#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Configuration Module for SimpleHTTPd
------------------------------------
Handles loading server configuration from its sources:
- Default configuration
- Configuration file (JSON)
- Command-line arguments

Configuration is read once at start-up and is read-only afterwards, so a
single instance is shared by every connection without locking.
"""

import os
import json
import logging
import argparse


def _is_int(value):
    # bool is an int subclass; reject it explicitly
    return isinstance(value, int) and not isinstance(value, bool)


def _is_port(value):
    return _is_int(value) and 1 <= value <= 65535


def _is_positive_int(value):
    return _is_int(value) and value > 0


def _is_positive_number(value):
    return (_is_int(value) or isinstance(value, float)) and value > 0


def _is_text(value):
    return isinstance(value, str) and bool(value)


class ServerConfig:
    """
    Server configuration.

    Values are resolved with the following precedence (highest to lowest):
    1. Command-line arguments / keyword overrides
    2. Configuration file
    3. Default values
    """

    DEFAULT_CONFIG = {
        "host": "0.0.0.0",
        "port": 8080,
        "content_root": "wwwroot",
        "log_dir": "logs",
        "log_level": "INFO",
        "log_file": None,
        "colored_logging": True,
        "request_timeout": 5.0,
        "buffer_size": 8192,
        "max_header_size": 64 * 1024,
        "connection_queue": 128,
        "accept_timeout": 1.0,
        "compression_level": 1,
        "server_name": "SimpleHTTPd/1.0",
    }

    # Keys as written in config.json by earlier deployments
    FILE_KEY_ALIASES = {
        "contentRoot": "content_root",
        "logDir": "log_dir",
        "logLevel": "log_level",
    }

    # A value read from a file is applied only if its check passes
    VALIDATORS = {
        "host": lambda v: isinstance(v, str),
        "port": _is_port,
        "content_root": _is_text,
        "log_dir": _is_text,
        "log_level": lambda v: isinstance(v, str) and v.upper() in (
            'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'),
        "log_file": lambda v: v is None or _is_text(v),
        "colored_logging": lambda v: isinstance(v, bool),
        "request_timeout": _is_positive_number,
        "buffer_size": _is_positive_int,
        "max_header_size": _is_positive_int,
        "connection_queue": _is_positive_int,
        "accept_timeout": _is_positive_number,
        "compression_level": lambda v: _is_int(v) and 0 <= v <= 9,
        "server_name": _is_text,
    }

    def __init__(self, config_file=None, **kwargs):
        """
        Initialize the configuration with values from file and kwargs.

        Args:
            config_file: Path to the configuration file
            **kwargs: Configuration values that override file values
        """
        self._config = self.DEFAULT_CONFIG.copy()
        self.logger = logging.getLogger('ServerConfig')

        if config_file:
            self.load_from_file(config_file)

        for key, value in kwargs.items():
            self._config[key] = value

    def load_from_file(self, config_path="config.json"):
        """
        Load configuration from a JSON file.

        A missing or malformed file leaves the defaults untouched.

        Args:
            config_path: Path to the configuration file (default: config.json)

        Returns:
            bool: True if the file was applied, False otherwise
        """
        if not os.path.exists(config_path):
            self.logger.warning(f"Configuration file {config_path} not found. Using defaults.")
            return False

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Error loading configuration from {config_path}: {e}. Using defaults.")
            return False

        if not isinstance(file_config, dict):
            self.logger.warning(f"Configuration file {config_path} must contain a JSON object. Using defaults.")
            return False

        for key, value in file_config.items():
            key = self.FILE_KEY_ALIASES.get(key, key)
            validator = self.VALIDATORS.get(key)
            if validator is None:
                self.logger.warning(f"Ignoring unknown setting {key!r} in {config_path}")
                continue
            if not validator(value):
                self.logger.warning(f"Ignoring invalid {key} {value!r} in {config_path}")
                continue
            self._config[key] = value

        self.logger.info(f"Loaded configuration from {config_path}")
        return True

    def load_from_args(self, args=None):
        """
        Parse command line arguments and update configuration.

        Args:
            args: Command line arguments to parse (default: None, uses sys.argv)

        Returns:
            argparse.Namespace: Parsed arguments
        """
        parser = argparse.ArgumentParser(description='SimpleHTTPd static file server')
        parser.add_argument('-c', '--config', default='config.json',
                            help='Path to configuration file')
        parser.add_argument('-p', '--port', type=int,
                            help='Server port (overrides config file)')
        parser.add_argument('-d', '--directory',
                            help='Content root directory (overrides config file)')
        parser.add_argument('-l', '--log-level',
                            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                            help='Logging level')
        parser.add_argument('--host',
                            help='Host address to bind (overrides config file)')
        parser.add_argument('--no-color', action='store_true',
                            help='Disable colored console logging')

        parsed_args = parser.parse_args(args)

        self.load_from_file(parsed_args.config)

        if parsed_args.port is not None:
            if _is_port(parsed_args.port):
                self._config['port'] = parsed_args.port
            else:
                parser.error(f"port must be between 1 and 65535, got {parsed_args.port}")
        if parsed_args.directory:
            self._config['content_root'] = parsed_args.directory
        if parsed_args.log_level:
            self._config['log_level'] = parsed_args.log_level
        if parsed_args.host:
            self._config['host'] = parsed_args.host
        if parsed_args.no_color:
            self._config['colored_logging'] = False

        return parsed_args

    def get(self, key, default=None):
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if key is not found

        Returns:
            Value for the key or default if not found
        """
        return self._config.get(key, default)

    def get_all(self):
        """
        Get all configuration values.

        Returns:
            dict: Copy of all configuration values
        """
        return self._config.copy()

    @property
    def host(self):
        return self.get('host')

    @property
    def port(self):
        return self.get('port')

    @property
    def content_root(self):
        return os.path.abspath(self.get('content_root'))

    @property
    def log_dir(self):
        return self.get('log_dir')

    @property
    def log_level(self):
        return self.get('log_level')

    @property
    def log_file(self):
        return self.get('log_file')

    @property
    def colored_logging(self):
        return self.get('colored_logging')

    @property
    def request_timeout(self):
        return self.get('request_timeout')

    @property
    def buffer_size(self):
        return self.get('buffer_size')

    @property
    def max_header_size(self):
        return self.get('max_header_size')

    @property
    def connection_queue(self):
        return self.get('connection_queue')

    @property
    def accept_timeout(self):
        return self.get('accept_timeout')

    @property
    def compression_level(self):
        return self.get('compression_level')

    @property
    def server_name(self):
        return self.get('server_name')
