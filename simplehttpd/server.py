#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
SimpleHTTPd Server Module
-------------------------
Listens on the configured port and hands every accepted connection to its
own ConnectionHandler running on a dedicated thread.
"""

import os
import socket
import threading
import time
import logging
import signal

from .access_log import AccessLog
from .handler import ConnectionHandler
from .resolver import PathResolver


class WebServer:
    """
    Accept loop for the static file server.

    The shutdown event doubles as the cancellation signal handed to each
    connection: once set, no new connections are accepted, while accepted
    ones run until they finish or hit their own socket timeout.
    """

    def __init__(self, config, access_log=None):
        """
        Initialize the web server.

        Args:
            config: ServerConfig instance
            access_log: AccessLog to share between connections (created
                from config.log_dir when omitted)
        """
        self.config = config
        self.logger = logging.getLogger('WebServer')
        self.access_log = access_log or AccessLog(config.log_dir)
        self.resolver = PathResolver(config.content_root)

        self.server_socket = None
        self.is_running = False

        self._shutdown_event = threading.Event()
        self._accept_thread = None
        self._connections = set()
        self._connections_lock = threading.Lock()

    @property
    def address(self):
        """The (host, port) the server is bound to, or None when stopped."""
        if self.server_socket is None:
            return None
        return self.server_socket.getsockname()[:2]

    def install_signal_handlers(self):
        """Route SIGINT and SIGTERM to a graceful shutdown (main thread only)."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, sig, frame):
        self.logger.info(f"Received signal {sig}, shutting down...")
        self._shutdown_event.set()

    def start(self):
        """
        Create the content and log directories, bind the listening socket and
        start the accept loop in a background thread.

        Returns:
            bool: True if the server is listening
        """
        if self.is_running:
            self.logger.warning("Server is already running")
            return True

        try:
            os.makedirs(self.config.content_root, exist_ok=True)
            os.makedirs(self.access_log.log_dir, exist_ok=True)

            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((self.config.host, self.config.port))
            self.server_socket.listen(self.config.connection_queue)
            # accept() wakes up periodically to notice the shutdown event
            self.server_socket.settimeout(self.config.accept_timeout)
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Error starting server: {e}")
            if self.server_socket:
                self.server_socket.close()
                self.server_socket = None
            return False

        self._shutdown_event.clear()
        self.is_running = True

        host, port = self.address
        self.logger.info(f"Server started on port {port} (bound to {host})")
        self.logger.info(f"Serving files from: {self.config.content_root}")
        self.logger.info("Press Ctrl+C to stop the server")

        self._accept_thread = threading.Thread(
            target=self._accept_connections,
            name="Acceptor",
            daemon=True
        )
        self._accept_thread.start()
        return True

    def _accept_connections(self):
        while not self._shutdown_event.is_set():
            try:
                client_socket, client_address = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._shutdown_event.is_set():
                    break
                self.logger.error(f"Error accepting connection: {e}")
                self._record_error(f"Error accepting connection: {e}")
                # Avoid spinning on repeated accept failures
                time.sleep(0.1)
                continue

            try:
                client_socket.settimeout(self.config.request_timeout)
                self._start_connection_thread(client_socket, client_address)
            except Exception as e:
                self.logger.error(f"Could not dispatch connection from {client_address}: {e}")
                self._record_error(f"Could not dispatch connection from {client_address}: {e}")
                client_socket.close()

    def _start_connection_thread(self, client_socket, client_address):
        thread = threading.Thread(
            target=self._handle_client,
            args=(client_socket, client_address),
            name=f"Connection-{client_address[0]}:{client_address[1]}",
            daemon=True
        )
        with self._connections_lock:
            self._connections.add(thread)
        try:
            thread.start()
        except RuntimeError:
            with self._connections_lock:
                self._connections.discard(thread)
            raise

    def _handle_client(self, client_socket, client_address):
        try:
            handler = ConnectionHandler(
                client_socket,
                client_address,
                self.config,
                self.access_log,
                resolver=self.resolver,
                cancel_event=self._shutdown_event
            )
            handler.handle()
        finally:
            with self._connections_lock:
                self._connections.discard(threading.current_thread())

    @property
    def active_connections(self):
        """Number of connection threads that have not finished yet."""
        with self._connections_lock:
            return len(self._connections)

    def _record_error(self, message):
        try:
            self.access_log.log_error(message)
        except OSError as e:
            self.logger.error(f"Could not write error entry to access log: {e}")

    def shutdown(self):
        """
        Stop accepting connections and wait for in-flight ones to finish.
        """
        if not self.is_running:
            return

        self.logger.info("Shutting down server...")
        self._shutdown_event.set()

        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None

        if self.server_socket:
            self.server_socket.close()
            self.server_socket = None

        with self._connections_lock:
            pending = list(self._connections)
        for thread in pending:
            thread.join()

        self.is_running = False
        self.logger.info("Server stopped.")

    def wait_for_shutdown(self):
        """
        Block until a shutdown is requested (e.g. by a signal), then stop.
        """
        try:
            while not self._shutdown_event.wait(1):
                pass
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt, shutting down...")
        self.shutdown()

    def request_shutdown(self):
        """Ask the accept loop to stop; shutdown() completes the stop."""
        self._shutdown_event.set()
