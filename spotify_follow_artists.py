#!/usr/bin/env python3
"""
Follow on Spotify every artist you rated highly in iTunes.

1. Load the iTunes library and keep tracks at or above the minimum rating
2. Reduce them to unique artist names, splitting "A, B" credits
3. Skip artists already followed or listed in the config's artist_skip
4. Search Spotify for each remaining artist and follow exact name matches

A name that Spotify spells differently can be mapped in the config's
artist_overrides ({"iTunes name": "Spotify name"}).
"""

import logging

from constants import FOLLOW_BATCH_SIZE
from errors import FetchError
from itunes_library import load_library, filter_rating, reduce_artists
from spotify_utils import batched
from tqdm_utils import progress_bar, update_progress_bar

logger = logging.getLogger(__name__)

def split_names(names):
    """Split combined credits ("A, B") into single artist names."""
    out = []
    for name in names:
        out.extend(name.split(", "))
    return out

def get_followed_artists(service):
    """Every artist the current user follows, across all cursor pages."""
    artists = []
    cursor = None
    while True:
        page, cursor = service.get_followed_artists(after=cursor)
        artists.extend(page)
        if cursor is None:
            break
    return artists

class FollowManager:
    """Decides which iTunes artists to follow and follows them."""

    def __init__(self, service, skip=None, overrides=None, show_progress=False):
        self.service = service
        self.skip_lookup = set(skip or [])
        self.overrides = dict(overrides or {})
        self.show_progress = show_progress
        self.following_lookup = set()

    @classmethod
    def from_config(cls, service, config, show_progress=False):
        return cls(
            service,
            skip=config.get("artist_skip", []),
            overrides=config.get("artist_overrides", {}),
            show_progress=show_progress
        )

    def should_follow(self, name):
        """
        Spotify ID of the artist to follow for an iTunes artist name.

        Returns:
            The artist ID, or None when the artist should be left alone
        """
        if not name:
            return None
        if name in self.skip_lookup:
            logger.debug(f"Skipping {name} at request of config artist_skip")
            return None
        if name in self.overrides:
            override = self.overrides[name]
            logger.debug(f"Overriding iTunes name {name} with {override} from config artist_overrides")
            name = override

        name = name.lower()
        if name in self.following_lookup:
            logger.debug(f"Already following {name}")
            return None

        results = self.service.search_artist(name)
        if not results:
            logger.warning(f"Could not find Spotify artist {name}")
            return None

        artist = results[0]
        if artist.get('name', '').lower() != name:
            logger.warning(
                f"Name mismatch for {name}: Spotify has {artist.get('name')} ({artist.get('uri')}). "
                "Add an entry to artist_overrides in the config to force a match"
            )
            return None

        logger.info(f"Will follow {artist.get('name')}")
        return artist['id']

    def ensure_followed(self, names):
        """
        Follow every artist in names that isn't followed yet.

        Returns:
            Number of artists followed
        """
        following = get_followed_artists(self.service)
        self.following_lookup = {artist.get('name', '').lower() for artist in following}

        to_follow = []
        for name in split_names(names):
            try:
                artist_id = self.should_follow(name)
            except FetchError as e:
                logger.error(f"Failed to determine follow state of {name}: {e}")
                continue
            if artist_id and artist_id not in to_follow:
                to_follow.append(artist_id)

        if not to_follow:
            logger.info("No artists to follow")
            return 0

        logger.info(f"{len(to_follow)} artists to follow")
        with progress_bar(len(to_follow), "Following artists", "artist", disable=not self.show_progress) as bar:
            # Spotify follows at most 50 artists per call
            for batch in batched(to_follow, FOLLOW_BATCH_SIZE):
                self.service.follow_artists(batch)
                update_progress_bar(bar, len(batch))
        return len(to_follow)

def follow_rated_artists(service, config, show_progress=False):
    """Follow the artists of every track rated at least follow_min_rating in iTunes."""
    records = load_library(config.itunes_library_path)
    min_rating = int(config.get("follow_min_rating", 60))
    rated = filter_rating(records, min_rating)
    artists = reduce_artists(rated)
    logger.info(f"Found {len(rated)} tracks rated {min_rating}+ by {len(artists)} artists")

    manager = FollowManager.from_config(service, config, show_progress=show_progress)
    return manager.ensure_followed(artists)
