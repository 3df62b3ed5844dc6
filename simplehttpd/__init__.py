#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
SimpleHTTPd
-----------
A minimal HTTP/1.1 static file server built directly on Python's socket
library.

This package provides:
- Manual request framing (request line, headers, POST bodies)
- Static file serving confined to a content root
- gzip compression for text-like content types
- A per-day, thread-safe access log
- One worker thread per connection with graceful shutdown
"""

__version__ = '1.0.0'

from .server import WebServer
from .config import ServerConfig
from .handler import ConnectionHandler
from .access_log import AccessLog
from .utils import setup_logging

__all__ = ['WebServer', 'ServerConfig', 'ConnectionHandler', 'AccessLog', 'setup_logging']
