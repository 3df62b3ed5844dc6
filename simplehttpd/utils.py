#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Utility Module for SimpleHTTPd
------------------------------
Contains helper functions used throughout the server:
- Logging setup functions
- Query string decoding
- MIME type detection and compression eligibility
- HTTP date formatting
"""

import os
import time
import logging
import urllib.parse
from logging.handlers import RotatingFileHandler

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Extension (lowercase, with leading dot) -> content type
MIME_TYPES = {
    '.html': 'text/html',
    '.htm': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.json': 'application/json',
    '.xml': 'application/xml',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
    '.txt': 'text/plain',
    '.wav': 'audio/wav',
    '.mp4': 'video/mp4',
    '.pdf': 'application/pdf',
}

DEFAULT_MIME_TYPE = 'application/octet-stream'


class ColoredFormatter(logging.Formatter):
    """Formatter that colours console lines by level."""

    FORMATS = {
        logging.DEBUG: Fore.CYAN + LOG_FORMAT + Style.RESET_ALL,
        logging.INFO: Fore.GREEN + LOG_FORMAT + Style.RESET_ALL,
        logging.WARNING: Fore.YELLOW + LOG_FORMAT + Style.RESET_ALL,
        logging.ERROR: Fore.RED + LOG_FORMAT + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + Style.BRIGHT + LOG_FORMAT + Style.RESET_ALL
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        formatter = logging.Formatter(log_fmt, datefmt=LOG_DATE_FORMAT)
        return formatter.format(record)


def setup_logging(log_level='INFO', log_file=None, max_size=10485760, backup_count=5, use_colored_logging=True):
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (default: INFO)
        log_file: Diagnostic log file path (default: None, console only)
        max_size: Maximum log file size in bytes (default: 10MB)
        backup_count: Number of backup logs to keep (default: 5)
        use_colored_logging: Whether to use colored logging in console (default: True)

    Returns:
        logging.Logger: Root logger instance
    """
    log_level_value = getattr(logging, str(log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_value)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_file:
        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Error setting up log file: {e}")

    console_handler = logging.StreamHandler()
    if use_colored_logging:
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root_logger.addHandler(console_handler)
    return root_logger


def parse_query_string(query):
    """
    Decode a URL-encoded query fragment.

    Pairs are separated by '&', keys and values are percent-decoded with
    '+' read as a space. A key without '=' maps to an empty string and a
    repeated key keeps its last value.

    Args:
        query: Raw query string (without the leading '?')

    Returns:
        dict: Ordered mapping of key to value
    """
    params = {}
    if not query:
        return params

    for key, value in urllib.parse.parse_qsl(query, keep_blank_values=True):
        params[key] = value
    return params


def get_mime_type(filepath):
    """
    Get the content type for a file based on its extension.

    Args:
        filepath: Path or file name

    Returns:
        str: Content type, application/octet-stream when unknown
    """
    ext = os.path.splitext(filepath)[1].lower()
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def is_compressible(content_type):
    """Whether a response with this content type may be gzip-encoded."""
    return (
        content_type.startswith('text/')
        or content_type == 'application/javascript'
        or content_type == 'application/json'
        or content_type.endswith('xml')
    )


def format_http_date(timestamp=None):
    """
    Format a timestamp as an HTTP date string.

    Args:
        timestamp: UNIX timestamp (default: current time)

    Returns:
        str: HTTP date string in RFC 7231 format
    """
    if timestamp is None:
        timestamp = time.time()
    return time.strftime('%a, %d %b %Y %H:%M:%S GMT', time.gmtime(timestamp))
