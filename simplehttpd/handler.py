#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Connection Handler Module for SimpleHTTPd
-----------------------------------------
Drives one accepted connection from the first byte read to the socket
close: frame the request, log it, check the method, resolve the target
file and write the response.
"""

import os
import socket
import logging
import traceback
from enum import Enum

from .request import RequestFramer
from .resolver import PathResolver
from .response import ResponseWriter
from .utils import get_mime_type


class ConnectionState(Enum):
    """
    Steps a connection passes through.

    The access-log record is written on entering DISPATCHING; LOGGED is
    entered once the response has been written and its outcome logged.
    """

    AWAITING_REQUEST = "awaiting_request"
    DISPATCHING = "dispatching"
    SERVING = "serving"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    LOGGED = "logged"
    CLOSED = "closed"


class ConnectionHandler:
    """
    Handles exactly one client connection.

    A new instance is created per accepted socket; the request it frames and
    the response it writes belong to that instance alone. The configuration,
    path resolver and access log are shared, read-only or internally locked.
    """

    SUPPORTED_METHODS = ('GET', 'POST')
    NOT_FOUND_PAGE = '404.html'
    DEFAULT_NOT_FOUND_BODY = "<h1>404 - Not Found</h1>"

    def __init__(self, client_socket, client_address, config, access_log, resolver=None, cancel_event=None):
        """
        Args:
            client_socket: Accepted socket with its timeout already set
            client_address: Peer address tuple (ip, port)
            config: ServerConfig instance
            access_log: Shared AccessLog receiving request and error entries
            resolver: Shared PathResolver (built from config when omitted)
            cancel_event: Server shutdown signal passed to the framer
        """
        self.sock = client_socket
        self.client_address = client_address
        self.config = config
        self.access_log = access_log
        self.resolver = resolver or PathResolver(config.content_root)
        self.cancel_event = cancel_event
        self.logger = logging.getLogger('ConnectionHandler')

        self.state = ConnectionState.AWAITING_REQUEST
        self.history = [self.state]
        self.request = None
        self.status_code = None

    def _enter(self, state):
        self.state = state
        self.history.append(state)

    @property
    def client_ip(self):
        if isinstance(self.client_address, tuple) and self.client_address:
            return str(self.client_address[0])
        return 'unknown'

    def handle(self):
        """Process the connection; always leaves it closed."""
        try:
            framer = RequestFramer(
                self.sock,
                buffer_size=self.config.buffer_size,
                max_header_size=self.config.max_header_size,
                cancel_event=self.cancel_event
            )
            request = framer.read_request()
            if request is None:
                self.logger.debug(f"No complete request from {self.client_ip}")
                return

            self.request = request
            self._enter(ConnectionState.DISPATCHING)
            self.access_log.log_request(request, self.client_ip)

            writer = ResponseWriter(
                self.sock,
                version=request.version,
                server_name=self.config.server_name,
                buffer_size=self.config.buffer_size,
                compression_level=self.config.compression_level
            )
            self.status_code = self._dispatch(request, writer)

            self.logger.info(f"{self.client_ip} - {request.method} {request.raw_target} - {self.status_code}")
            self._enter(ConnectionState.LOGGED)

        except Exception as e:
            self.logger.error(f"Error processing client {self.client_ip}: {e}")
            self.logger.debug(traceback.format_exc())
            self._record_error(f"Error processing client {self.client_ip}: {e}")
        finally:
            self._close()
            self._enter(ConnectionState.CLOSED)

    def _dispatch(self, request, writer):
        if request.method.upper() not in self.SUPPORTED_METHODS:
            self._enter(ConnectionState.METHOD_NOT_ALLOWED)
            writer.send_bytes(501, 'text/plain', 'Method not supported')
            return 501

        target = self.resolver.resolve(request.path)
        if target.forbidden:
            self._enter(ConnectionState.FORBIDDEN)
            self.logger.warning(f"Blocked path outside content root from {self.client_ip}: {request.raw_target}")
            writer.send_bytes(403, 'text/plain', 'Access denied')
            return 403

        file_path = target.absolute_path
        if os.path.isdir(file_path):
            file_path = os.path.join(file_path, self.resolver.INDEX_FILE)

        if not os.path.isfile(file_path):
            self._enter(ConnectionState.NOT_FOUND)
            self._send_not_found(writer)
            return 404

        self._enter(ConnectionState.SERVING)
        writer.send_file(
            200,
            file_path,
            get_mime_type(file_path),
            request.headers.get('Accept-Encoding')
        )
        return 200

    def _send_not_found(self, writer):
        body = self.DEFAULT_NOT_FOUND_BODY.encode('utf-8')
        custom_page = os.path.join(self.resolver.root, self.NOT_FOUND_PAGE)

        if os.path.isfile(custom_page):
            try:
                with open(custom_page, 'rb') as f:
                    body = f.read()
            except OSError as e:
                self.logger.warning(f"Could not read {custom_page}: {e}")

        writer.send_bytes(404, 'text/html', body)

    def _record_error(self, message):
        try:
            self.access_log.log_error(message)
        except OSError as e:
            self.logger.error(f"Could not write error entry to access log: {e}")

    def _close(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            self.sock.close()
        except OSError:
            pass
