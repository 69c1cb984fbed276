#!/usr/bin/env python3
"""
Shared utilities for Spotify API operations across the project.

SpotifyService is the only object that talks to Spotify. It is created once by
the command line and handed to every component that needs it; nothing keeps a
process-wide client.
"""

import os
import functools
import logging
import requests
import spotipy
from spotipy.oauth2 import SpotifyOAuth

from constants import PAGE_SIZE, SPOTIFY_SCOPES, TOKEN_CACHE_FILE
from errors import FetchError

# Initialize logger
logger = logging.getLogger(__name__)

def spotify_call(operation):
    """
    Decorator turning Spotify and transport failures into FetchError.

    Calls are never retried; the error is raised with the operation name
    and the original exception chained.

    Usage:
        @spotify_call("get album")
        def get_album(self, album_id):
            return self._sp.album(album_id)
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (spotipy.SpotifyException, requests.exceptions.RequestException) as e:
                raise FetchError(f"Spotify {operation} failed: {e}") from e
        return wrapper
    return decorator

class SpotifyService:
    """
    The Spotify operations Music Manager relies on.

    Wraps a spotipy.Spotify client and returns the plain dicts spotipy
    produces. Paging is explicit so callers control the cursor.
    """

    def __init__(self, sp_client):
        """Initialize with an existing spotipy client."""
        self._sp = sp_client

    @spotify_call("current user lookup")
    def current_user_id(self):
        return self._sp.current_user()['id']

    @spotify_call("playlist listing")
    def list_playlists(self, owner_id=None):
        """
        List every playlist of the current user.

        Args:
            owner_id: Only keep playlists owned by this user

        Returns:
            List of simplified playlist objects
        """
        playlists = []
        offset = 0

        while True:
            results = self._sp.current_user_playlists(limit=PAGE_SIZE, offset=offset)
            items = results.get('items') or []
            playlists.extend(items)
            if len(items) < PAGE_SIZE or not results.get('next'):
                break
            offset += len(items)

        if owner_id:
            playlists = [p for p in playlists if (p.get('owner') or {}).get('id') == owner_id]

        logger.debug(f"Listed {len(playlists)} playlists")
        return playlists

    @spotify_call("playlist track pagination")
    def list_playlist_tracks(self, playlist_id, offset=0, page_size=PAGE_SIZE):
        """
        Fetch one page of a playlist's tracks.

        Args:
            playlist_id: Spotify playlist ID
            offset: Index of the first item of the page
            page_size: Number of items requested

        Returns:
            tuple: (tracks, next_offset). next_offset is None once a page
            comes back with fewer items than requested.
        """
        results = self._sp.playlist_items(playlist_id, limit=page_size, offset=offset)
        items = results.get('items') or []

        # Removed and local-only entries have no track
        tracks = [item['track'] for item in items if item.get('track')]

        next_offset = offset + len(items) if len(items) >= page_size else None
        return tracks, next_offset

    @spotify_call("album lookup")
    def get_album(self, album_id):
        return self._sp.album(album_id)

    @spotify_call("playlist creation")
    def create_playlist(self, user_id, name, public=False):
        return self._sp.user_playlist_create(user_id, name, public=public)

    @spotify_call("playlist replace")
    def replace_playlist_tracks(self, playlist_id, track_ids):
        """Replace the playlist contents; an empty list clears it."""
        self._sp.playlist_replace_items(playlist_id, list(track_ids))

    @spotify_call("playlist add")
    def add_tracks_to_playlist(self, playlist_id, track_ids):
        """Add tracks to a playlist. Spotify accepts at most 100 per call."""
        self._sp.playlist_add_items(playlist_id, list(track_ids))

    @spotify_call("playlist track removal")
    def remove_track_from_playlist(self, playlist_id, track_id):
        self._sp.playlist_remove_all_occurrences_of_items(playlist_id, [track_id])

    @spotify_call("artist follow")
    def follow_artists(self, artist_ids):
        """Follow artists. Spotify accepts at most 50 per call."""
        self._sp.user_follow_artists(list(artist_ids))

    @spotify_call("artist search")
    def search_artist(self, name):
        results = self._sp.search(q=name, type='artist', limit=10)
        return results.get('artists', {}).get('items') or []

    @spotify_call("followed artists listing")
    def get_followed_artists(self, after=None):
        """
        Fetch one page of followed artists.

        Returns:
            tuple: (artists, next_cursor). next_cursor is None on the last page.
        """
        results = self._sp.current_user_followed_artists(limit=PAGE_SIZE, after=after)
        page = results.get('artists') or {}
        artists = page.get('items') or []

        next_cursor = None
        if len(artists) >= PAGE_SIZE and page.get('next'):
            next_cursor = (page.get('cursors') or {}).get('after')
        return artists, next_cursor

def create_spotify_client(scopes=None, auto_open_browser=True):
    """
    Create an authenticated SpotifyService.

    Authentication is handled by spotipy's OAuth manager; the token is cached
    in the config directory. The spotipy client is built without retries.

    Args:
        scopes: List of required Spotify scopes (default: all the commands need)
        auto_open_browser: Whether to automatically open browser for auth

    Returns:
        SpotifyService instance
    """
    from credentials_manager import get_spotify_credentials

    client_id, client_secret, redirect_uri = get_spotify_credentials()

    os.makedirs(os.path.dirname(TOKEN_CACHE_FILE), exist_ok=True)

    auth_manager = SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=" ".join(scopes or SPOTIFY_SCOPES),
        open_browser=auto_open_browser,
        cache_path=TOKEN_CACHE_FILE
    )

    sp = spotipy.Spotify(
        auth_manager=auth_manager,
        requests_timeout=30,
        retries=0,
        status_retries=0
    )
    return SpotifyService(sp)

def batched(items, batch_size):
    """
    Split items into consecutive lists of at most batch_size.

    Args:
        items: Sequence to split
        batch_size: Maximum length of each batch

    Yields:
        Lists of items
    """
    items = list(items)
    for i in range(0, len(items), batch_size):
        yield items[i:i + batch_size]

def artist_names(track):
    """Names of a track's artists, in credit order."""
    return [artist.get('name', '') for artist in track.get('artists') or []]

def album_release_year(album):
    """
    Four digit release year of a Spotify album.

    Spotify release dates come with year, month or day precision
    ("1999", "1999-03", "1999-03-14").

    Returns:
        The year as a string, or "" when the album has no usable date
    """
    release_date = (album or {}).get('release_date') or ""
    year = release_date[:4]
    return year if len(year) == 4 and year.isdigit() else ""
