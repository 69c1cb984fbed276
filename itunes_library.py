#!/usr/bin/env python3
"""
The iTunes library export ("iTunes Music Library.xml").

Only what Music Manager needs is kept per track: name, artist, rating and the
iTunes track ID. Ratings are 0-100 in steps of 20, so 60 is three stars.
"""

import logging
import plistlib
from dataclasses import dataclass

from errors import LibraryError

logger = logging.getLogger(__name__)

@dataclass
class MetadataRecord:
    """One track of the iTunes library."""
    name: str
    artist: str
    rating: int = 0
    track_id: int = 0

    @classmethod
    def from_plist(cls, track):
        return cls(
            name=track.get("Name", ""),
            artist=track.get("Artist", ""),
            rating=int(track.get("Rating", 0) or 0),
            track_id=int(track.get("Track ID", 0) or 0)
        )

def load_library(path):
    """
    Load the tracks of an iTunes library export.

    Args:
        path: Location of the XML export

    Returns:
        List of MetadataRecord

    Raises:
        LibraryError: The file is missing or isn't a valid library export
    """
    try:
        with open(path, "rb") as f:
            library = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        raise LibraryError(f"Failed to load iTunes library {path}: {e}") from e

    tracks = library.get("Tracks", {}) if isinstance(library, dict) else {}
    records = [MetadataRecord.from_plist(track) for track in tracks.values() if isinstance(track, dict)]
    logger.info(f"Loaded {len(records)} tracks from iTunes library {path}")
    return records

def filter_rating(records, min_rating):
    """Tracks rated min_rating or more."""
    return [record for record in records if record.rating >= min_rating]

def reduce_artists(records):
    """Unique artist names of the given tracks, in first-seen order."""
    seen = set()
    artists = []
    for record in records:
        if record.artist in seen:
            continue
        seen.add(record.artist)
        artists.append(record.artist)
    return artists
