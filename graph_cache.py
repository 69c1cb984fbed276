#!/usr/bin/env python3
"""
Disk snapshot of the Spotify track graph.

The snapshot is a readable JSON document that is replaced as a whole on every
save. Keys of the Tracks and Playlists maps are the JSON encoding of the
two-element [artist, title] list:

    {
      "UserID": "someone",
      "Playlists": {"[\"Artist\", \"Title\"]": [{"ID": "...", "Name": "...", "OwnerID": "..."}]},
      "Tracks": {"[\"Artist\", \"Title\"]": {...spotify track...}}
    }

There is no expiry. A cached graph is used until the caller refreshes it.
"""

import os
import json
import logging
import tempfile

from constants import GRAPH_CACHE_FILE
from errors import CacheCorruptError, CacheWriteError
from track_graph import SongKey, PlaylistRef, TrackGraph

logger = logging.getLogger(__name__)

def encode_key(key):
    return json.dumps([key.artist, key.title], ensure_ascii=False)

def decode_key(text):
    parts = json.loads(text)
    if not isinstance(parts, list) or len(parts) != 2 or not all(isinstance(p, str) for p in parts):
        raise ValueError(f"song key {text!r} must be a list of two strings")
    return SongKey(parts[0], parts[1])

def graph_to_document(graph):
    """Convert a TrackGraph into its JSON document form."""
    return {
        "UserID": graph.user_id,
        "Tracks": {encode_key(key): track for key, track in graph.tracks.items()},
        "Playlists": {
            encode_key(key): [playlist.to_dict() for playlist in playlists]
            for key, playlists in graph.playlists.items()
        }
    }

def graph_from_document(document):
    """
    Rebuild a TrackGraph from its JSON document form.

    Raises:
        ValueError, KeyError, TypeError: The document doesn't have the expected shape
    """
    if not isinstance(document, dict):
        raise ValueError("snapshot must be a JSON object")

    tracks = document.get("Tracks") or {}
    playlists = document.get("Playlists") or {}
    if not isinstance(tracks, dict) or not isinstance(playlists, dict):
        raise ValueError("Tracks and Playlists must be JSON objects")

    return TrackGraph(
        user_id=document.get("UserID") or "",
        tracks={decode_key(key): track for key, track in tracks.items()},
        playlists={
            decode_key(key): [PlaylistRef.from_dict(playlist) for playlist in refs]
            for key, refs in playlists.items()
        }
    )

class GraphCache:
    """Loads and saves the track graph snapshot."""

    def __init__(self, path=GRAPH_CACHE_FILE):
        self.path = path

    def load(self):
        """
        Load the snapshot.

        Returns:
            tuple: (graph, found). A missing snapshot gives (None, False).

        Raises:
            CacheCorruptError: The snapshot exists but can't be decoded
        """
        if not os.path.exists(self.path):
            logger.debug(f"No graph cache at {self.path}")
            return None, False

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
            graph = graph_from_document(document)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Failed to decode graph cache {self.path}: {e}")
            raise CacheCorruptError(self.path, e) from e
        except OSError as e:
            raise CacheCorruptError(self.path, e) from e

        logger.info(f"Loaded {len(graph.tracks)} Spotify tracks from cache {self.path}")
        return graph, True

    def save(self, graph):
        """
        Replace the snapshot with the given graph.

        Raises:
            CacheWriteError: The snapshot couldn't be written
        """
        content = json.dumps(graph_to_document(graph), indent=2, sort_keys=True, ensure_ascii=False)
        directory = os.path.dirname(os.path.abspath(self.path))

        try:
            os.makedirs(directory, exist_ok=True)
            # Write next to the target and swap it in, so a failed write never leaves half a snapshot
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".playlists-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to write graph cache {self.path}: {e}")
            raise CacheWriteError(f"Failed to write graph cache {self.path}: {e}") from e

        logger.info(f"Saved {len(graph.tracks)} Spotify tracks to cache {self.path}")

    def get_or_fetch(self, fetch_fn):
        """
        Return the cached graph if there is one, otherwise fetch and cache it.

        Args:
            fetch_fn: Callable returning a fresh TrackGraph
        """
        graph, found = self.load()
        if found:
            return graph
        return self.refresh(fetch_fn)

    def refresh(self, fetch_fn):
        """Fetch a fresh graph and replace the snapshot with it."""
        graph = fetch_fn()
        self.save(graph)
        return graph
