#!/usr/bin/env python3
"""
Utility functions for managing Spotify API credentials.

Credentials come from environment variables or from a JSON file in the
user's config directory. The OAuth flow itself is left to spotipy.
"""

import os
import json

from constants import CREDENTIALS_FILE, DEFAULT_REDIRECT_URI
from errors import ConfigError

def get_spotify_credentials():
    """
    Get Spotify API credentials.

    Environment variables take precedence over the credentials file.

    Returns:
        tuple: (client_id, client_secret, redirect_uri)

    Raises:
        ConfigError: No credentials are available.
    """
    client_id = os.environ.get("SPOTIFY_CLIENT_ID", "")
    client_secret = os.environ.get("SPOTIFY_CLIENT_SECRET", "")
    redirect_uri = os.environ.get("SPOTIFY_REDIRECT_URI", "")

    if os.path.exists(CREDENTIALS_FILE):
        try:
            with open(CREDENTIALS_FILE, "r") as f:
                credentials = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Error loading Spotify credentials from {CREDENTIALS_FILE}: {e}") from e

        client_id = client_id or credentials.get("SPOTIFY_CLIENT_ID", "")
        client_secret = client_secret or credentials.get("SPOTIFY_CLIENT_SECRET", "")
        redirect_uri = redirect_uri or credentials.get("SPOTIFY_REDIRECT_URI", "")

    if not client_id or not client_secret:
        raise ConfigError(
            "Spotify credentials not found. Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET "
            f"or add them to {CREDENTIALS_FILE}"
        )

    return client_id, client_secret, redirect_uri or DEFAULT_REDIRECT_URI

