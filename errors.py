#!/usr/bin/env python3
"""
Exception types raised by Music Manager.

Every error carries the context of the operation that failed; the original
cause is chained with ``raise ... from``.
"""


class MusicManagerError(Exception):
    """Base exception for all Music Manager errors."""

    def __init__(self, message, *args):
        super().__init__(message, *args)
        self.message = message


class FetchError(MusicManagerError):
    """A Spotify call failed while listing playlists, paginating tracks or looking up an album."""


class CacheCorruptError(MusicManagerError):
    """The graph snapshot exists but cannot be decoded."""

    def __init__(self, path, reason):
        super().__init__(f"Graph cache {path} is corrupt: {reason}")
        self.path = path


class CacheWriteError(MusicManagerError):
    """The graph snapshot could not be written."""


class SaveError(MusicManagerError):
    """A local music file could not be persisted."""

    def __init__(self, path, reason):
        super().__init__(f"Failed to save {path}: {reason}")
        self.path = path


class ConfigError(MusicManagerError):
    """The configuration file could not be read or written."""


class LibraryError(MusicManagerError):
    """The local library (music directories or the iTunes export) could not be loaded."""
