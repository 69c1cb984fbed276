#!/usr/bin/env python3
"""
Centralized constants for the Music Manager project.
Contains shared values used across multiple modules.
"""

import os
from pathlib import Path

# Application metadata
APP_NAME = "Music Manager"
APP_VERSION = "1.0.0"

# Directory paths
CONFIG_DIR = os.path.join(str(Path.home()), ".music-manager")
CACHE_DIR = os.path.join(CONFIG_DIR, "cache")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")
CREDENTIALS_FILE = os.path.join(CONFIG_DIR, "credentials.json")
GRAPH_CACHE_FILE = os.path.join(CACHE_DIR, "playlists.json")
TOKEN_CACHE_FILE = os.path.join(CONFIG_DIR, "spotify_token_cache")

# Default iTunes library export name, relative to the configured iTunes dir
ITUNES_LIBRARY_FILE = "iTunes Music Library.xml"

# Local file extensions we know how to tag
SUPPORTED_EXTENSIONS = (".mp3", ".m4a")

# Spotify API page and batch sizes
PAGE_SIZE = 50                  # Playlist tracks / playlists per page
ADD_TRACKS_BATCH_SIZE = 100     # Max tracks per add-to-playlist call
FOLLOW_BATCH_SIZE = 50          # Max artists per follow call

# Bounded queue between playlist workers and the graph aggregator
GRAPH_QUEUE_SIZE = 16
MAX_PLAYLIST_WORKERS = 8

# Rating glyphs used in file comments
FULL_GLYPH = "★"
EMPTY_GLYPH = "☆"
MAX_RATING = 5

# iTunes stores ratings as 0-100 in steps of 20
ITUNES_RATING_STEP = 20

# Genre tag marking a track for removal everywhere
DEFAULT_DELETE_TAG = "delete"

# Application owning the iTunes library ("Music" on macOS 10.15+)
DEFAULT_ITUNES_APP = "iTunes"

# Spotify API scopes needed by the commands
SPOTIFY_SCOPES = [
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-private",
    "playlist-modify-public",
    "user-follow-read",
    "user-follow-modify",
]

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"

if __name__ == "__main__":
    print(f"{APP_NAME} v{APP_VERSION}")
    print(f"Configuration directory: {CONFIG_DIR}")
    print(f"Graph cache: {GRAPH_CACHE_FILE}")
