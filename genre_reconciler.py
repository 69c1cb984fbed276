#!/usr/bin/env python3
"""
Genre tags derived from Spotify playlist membership.

Every word of every playlist a track belongs to becomes a lower-case genre
token. Tokens already in the file are kept, configured removals are dropped
from both sides, and the result is written back sorted so that the same
inputs always produce the same genre string.
"""

import logging

logger = logging.getLogger(__name__)

def genre_tokens(value):
    """Split a playlist name or genre string into lower-case tokens."""
    return {part.strip().lower() for part in value.split(" ") if part.strip()}

def apply_replacements(name, replacements):
    """Apply each substring replacement, in the order configured, to a playlist name."""
    for match, replacement in replacements.items():
        if match:
            name = name.replace(match, replacement)
    return name

def reconcile_genre(current, playlist_names, replacements=None, removals=None):
    """
    Work out the genre string a file should carry.

    Args:
        current: The file's current genre string
        playlist_names: Names of the playlists the track belongs to
        replacements: Substring replacements applied to playlist names first
        removals: Tokens that must never appear in the result (case-insensitive)

    Returns:
        tuple: (new_genre, changed). When nothing changed the original
        string is returned untouched.
    """
    current = current or ""
    replacements = replacements or {}
    removal_lookup = {tag.lower() for tag in (removals or [])}

    target = set()
    for name in playlist_names:
        target |= genre_tokens(apply_replacements(name, replacements))

    existing = genre_tokens(current)

    # Only tokens taken out of the file count as removals, a removal token
    # that keeps showing up in playlist names is simply never added
    removed = sorted(existing & removal_lookup)
    target -= removal_lookup
    existing -= removal_lookup

    genres = sorted(existing | target)
    new_genre = " ".join(genres)

    logger.debug(
        f"Genre diff: existing={sorted(existing)} target={sorted(target)} "
        f"removed={removed} added={sorted(target - existing)}"
    )

    if new_genre == current and not removed:
        return current, False
    return new_genre, True

class GenreReconciler:
    """reconcile_genre bound to the configured replacement and removal rules."""

    def __init__(self, replacements=None, removals=None):
        self.replacements = dict(replacements or {})
        self.removals = list(removals or [])

    def reconcile(self, current, playlist_names):
        return reconcile_genre(current, playlist_names, self.replacements, self.removals)
