#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Access Log Module for SimpleHTTPd
---------------------------------
Appends one record per request (and one line per error) to a per-day log
file named YYYY-MM-DD.log (UTC) inside the log directory.

A single AccessLog instance is shared by every connection thread. Each
append opens the day's file, writes the whole record and closes it while
holding one lock, so records from concurrent connections never interleave.
"""

import os
import logging
import threading
from datetime import datetime, timezone

RECORD_SEPARATOR = '-' * 25


class AccessLog:
    """Thread-safe, append-only per-day traffic log."""

    def __init__(self, log_dir='logs', clock=None):
        """
        Args:
            log_dir: Directory holding the daily log files
            clock: Callable returning an aware UTC datetime (for tests)
        """
        self.log_dir = log_dir
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self.logger = logging.getLogger('AccessLog')

    def current_log_path(self, now=None):
        now = now or self._clock()
        return os.path.join(self.log_dir, f"{now:%Y-%m-%d}.log")

    def log_request(self, request, client_ip):
        """
        Append a request record.

        Args:
            request: Parsed Request
            client_ip: Client address as a string
        """
        now = self._clock()
        lines = [
            RECORD_SEPARATOR,
            f"Timestamp: {now.isoformat()}",
            f"Client IP: {client_ip}",
            f"Method: {request.method}",
            f"URL: {request.raw_target}",
        ]

        if request.query:
            lines.append("Query parameters:")
            lines.extend(f"  {key} = {value}" for key, value in request.query.items())

        lines.append("Headers:")
        lines.extend(f"  {name}: {value}" for name, value in request.headers.items())

        if request.method.upper() == 'POST':
            lines.append("Body:")
            lines.append(request.body_text)

        self._append("\n".join(lines) + "\n\n", now)

    def log_error(self, message):
        """Append a single-line error entry."""
        now = self._clock()
        self._append(f"ERROR: {message} ({now.isoformat()})\n", now)

    def _append(self, text, now):
        with self._lock:
            os.makedirs(self.log_dir, exist_ok=True)
            path = self.current_log_path(now)
            if not os.path.exists(path):
                self.logger.info(f"Starting access log file {path}")
            with open(path, 'a', encoding='utf-8') as f:
                f.write(text)
