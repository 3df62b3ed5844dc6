#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
SimpleHTTPd
-----------
Command-line entry point: loads config.json (or the file given with -c),
applies command-line overrides and serves until Ctrl+C.
"""

import sys

from simplehttpd import WebServer, ServerConfig, setup_logging


def main(argv=None):
    """
    Main entry point for the server.

    Returns:
        int: Process exit code
    """
    config = ServerConfig()
    config.load_from_args(argv)

    setup_logging(
        log_level=config.log_level,
        log_file=config.log_file,
        use_colored_logging=config.colored_logging
    )

    server = WebServer(config)
    if not server.start():
        return 1

    server.install_signal_handlers()
    server.wait_for_shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())
