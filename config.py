#!/usr/bin/env python3
"""
Configuration management for Music Manager.
Handles loading settings from a JSON file and environment variables.
"""

import os
import copy
import json
import logging

from constants import CONFIG_FILE, GRAPH_CACHE_FILE, DEFAULT_DELETE_TAG, DEFAULT_ITUNES_APP, ITUNES_LIBRARY_FILE
from errors import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG = {
    # Spotify playlists whose names match this regex make up the track graph
    "playlist_regex": ".*",

    # Playlist collecting Spotify tracks that are missing locally.
    # The id is filled in once the playlist has been created.
    "output_playlist": {
        "id": "",
        "name": "Missing Locally"
    },

    # Genre tagging rules, applied to playlist names
    "tag_replacements": {},
    "tag_removals": [],
    "delete_tag": DEFAULT_DELETE_TAG,

    # Substrings stripped from file comments
    "comment_removals": [],

    # Local music directories, scanned recursively
    "music_dirs": [],

    # iTunes library export
    "itunes_dir": "",
    "itunes_library_file": ITUNES_LIBRARY_FILE,
    "itunes_app": DEFAULT_ITUNES_APP,

    # Track graph snapshot
    "cache_file": GRAPH_CACHE_FILE,

    # Artist following
    "follow_min_rating": 60,
    "artist_skip": [],
    "artist_overrides": {}
}

class Config:
    """Configuration manager for Music Manager."""

    def __init__(self, config_file=None):
        self.config_file = config_file or os.environ.get("MUSIC_MANAGER_CONFIG", CONFIG_FILE)
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self.load_config()

    def load_config(self):
        """Load configuration from file and environment variables."""
        # A missing file isn't an error, the defaults apply
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
            except (json.JSONDecodeError, IOError) as e:
                raise ConfigError(f"Could not load config file {self.config_file}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigError(f"Config file {self.config_file} must contain a JSON object")
            self._config.update(file_config)
        else:
            logger.debug(f"No config file at {self.config_file}, using defaults")

        # Override with environment variables
        self._load_from_env()

    def _load_from_env(self):
        """Load configuration from environment variables."""
        env_mappings = {
            "MUSIC_MANAGER_PLAYLIST_REGEX": "playlist_regex",
            "MUSIC_MANAGER_CACHE_FILE": "cache_file",
            "MUSIC_MANAGER_ITUNES_DIR": "itunes_dir",
            "MUSIC_MANAGER_DELETE_TAG": "delete_tag",
            "MUSIC_MANAGER_ITUNES_APP": "itunes_app",
        }

        for env_var, config_key in env_mappings.items():
            if env_var in os.environ:
                self._config[config_key] = os.environ[env_var]

    def get(self, key, default=None):
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key, value):
        """Set a configuration value."""
        self._config[key] = value

    def save_config(self):
        """Save current configuration to file."""
        directory = os.path.dirname(self.config_file)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._config, f, indent=2)
        except IOError as e:
            raise ConfigError(f"Could not save config file {self.config_file}: {e}") from e

    # Convenience accessors for common settings

    @property
    def playlist_regex(self):
        return self.get("playlist_regex", ".*")

    @property
    def output_playlist_id(self):
        return self.get("output_playlist", {}).get("id", "")

    @output_playlist_id.setter
    def output_playlist_id(self, playlist_id):
        output = dict(self.get("output_playlist", {}))
        output["id"] = playlist_id
        self.set("output_playlist", output)

    @property
    def output_playlist_name(self):
        return self.get("output_playlist", {}).get("name") or DEFAULT_CONFIG["output_playlist"]["name"]

    @property
    def itunes_library_path(self):
        """Full path of the iTunes library XML export."""
        return os.path.join(self.get("itunes_dir", ""), self.get("itunes_library_file", ITUNES_LIBRARY_FILE))
