#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Path Resolution Module for SimpleHTTPd
--------------------------------------
Maps decoded URL paths onto files below the content root and refuses any
path that would escape it.
"""

import os
import urllib.parse


class ResolvedTarget:
    """
    Result of resolving a URL path.

    Exactly one of the two outcomes holds: either ``absolute_path`` is set
    and ``forbidden`` is False, or ``absolute_path`` is None and
    ``forbidden`` is True.
    """

    __slots__ = ('absolute_path', 'forbidden')

    def __init__(self, absolute_path=None, forbidden=False):
        if forbidden and absolute_path is not None:
            raise ValueError("a forbidden target cannot carry a path")
        if not forbidden and absolute_path is None:
            raise ValueError("an allowed target needs a path")
        self.absolute_path = absolute_path
        self.forbidden = forbidden

    @classmethod
    def allowed(cls, absolute_path):
        return cls(absolute_path=absolute_path)

    @classmethod
    def denied(cls):
        return cls(forbidden=True)

    def __repr__(self):
        if self.forbidden:
            return "ResolvedTarget(forbidden=True)"
        return f"ResolvedTarget({self.absolute_path!r})"


class PathResolver:
    """
    Confines requested paths to a content root.

    The containment check runs on the normalized absolute path, never on the
    raw request string, so ``..`` segments and their percent-encoded forms
    cannot escape the root.
    """

    INDEX_FILE = 'index.html'

    def __init__(self, content_root):
        self.root = os.path.normpath(os.path.abspath(content_root))
        self._root_key = os.path.normcase(self.root)

    def resolve(self, url_path):
        """
        Resolve a decoded URL path.

        Args:
            url_path: Percent-decoded request path (without query string)

        Returns:
            ResolvedTarget: The absolute file path, or a forbidden target
        """
        if url_path in ('', '/'):
            url_path = self.INDEX_FILE

        if url_path.startswith('/'):
            url_path = url_path[1:]

        # Decoded again so double-encoded traversal is normalized as well
        relative = urllib.parse.unquote(url_path)
        if '\x00' in relative:
            return ResolvedTarget.denied()

        candidate = os.path.normpath(os.path.abspath(os.path.join(self.root, relative)))
        if not self.contains(candidate):
            return ResolvedTarget.denied()
        return ResolvedTarget.allowed(candidate)

    def contains(self, absolute_path):
        """Whether a normalized absolute path is the root or lies below it."""
        key = os.path.normcase(absolute_path)
        if key == self._root_key:
            return True
        prefix = self._root_key if self._root_key.endswith(os.sep) else self._root_key + os.sep
        return key.startswith(prefix)
