#!/usr/bin/env python3
"""
The Spotify track graph: every track in the matching playlists, keyed by
(artist, title), together with the playlists each track belongs to.

Playlists are paginated concurrently, one worker per playlist. Workers never
touch the graph. Each page goes onto a bounded queue that a single aggregator
thread drains, so the aggregator is the only writer of the graph's maps.
"""

import re
import queue
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from constants import PAGE_SIZE, GRAPH_QUEUE_SIZE, MAX_PLAYLIST_WORKERS
from errors import FetchError
from spotify_utils import artist_names
from tqdm_utils import create_progress_bar, update_progress_bar, close_progress_bar

logger = logging.getLogger(__name__)

TRAILING_CONTROL_REGEX = re.compile(r"[\x00-\x1f\x7f]+$")

class SongKey(NamedTuple):
    """Identity of a song across local files, Spotify and iTunes."""
    artist: str
    title: str

    @classmethod
    def of(cls, artist, title):
        """Build a key, dropping trailing control characters (tag padding) and outer whitespace."""
        return cls(_clean(artist), _clean(title))

    def is_complete(self):
        return bool(self.artist and self.title)

def _clean(value):
    return TRAILING_CONTROL_REGEX.sub("", value or "").strip()

@dataclass(frozen=True)
class PlaylistRef:
    """A reference to a Spotify playlist."""
    id: str
    name: str
    owner_id: str

    @classmethod
    def from_spotify(cls, playlist):
        """Build a reference from a simplified Spotify playlist object."""
        return cls(
            id=playlist.get('id', ''),
            name=playlist.get('name', ''),
            owner_id=(playlist.get('owner') or {}).get('id', '')
        )

    def to_dict(self):
        return {"ID": self.id, "Name": self.name, "OwnerID": self.owner_id}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data["ID"], name=data["Name"], owner_id=data["OwnerID"])

def song_key_for_track(track):
    """The SongKey of a Spotify track: comma joined artist names and the track name."""
    return SongKey.of(", ".join(artist_names(track)), track.get('name', ''))

@dataclass
class PlaylistBatch:
    """One page of a playlist's tracks, as sent from a worker to the aggregator."""
    playlist: PlaylistRef
    tracks: List[dict]
    user_id: str

@dataclass
class TrackGraph:
    """Spotify tracks and their playlist memberships for one account."""
    user_id: str = ""
    tracks: Dict[SongKey, dict] = field(default_factory=dict)
    playlists: Dict[SongKey, List[PlaylistRef]] = field(default_factory=dict)

    def add_batch(self, batch):
        """Merge one page of playlist tracks into the graph."""
        for track in batch.tracks:
            key = song_key_for_track(track)
            logger.debug(f"Spotify track {key}")
            refs = self.playlists.setdefault(key, [])
            if batch.playlist not in refs:
                refs.append(batch.playlist)
            self.tracks[key] = track
            self.user_id = batch.user_id

    def playlist_names(self, key):
        return [playlist.name for playlist in self.playlists.get(key, [])]

# Tells the aggregator that every worker has finished
_DONE = object()

class GraphFetcher:
    """
    Builds a TrackGraph from the Spotify playlists whose names match a regex.

    A failure in any playlist aborts the whole build: the remaining workers
    stop after their current page and FetchError is raised. A partial graph
    is never returned, since removal decisions downstream rely on the graph
    being complete.
    """

    def __init__(self, service, playlist_regex, max_workers=MAX_PLAYLIST_WORKERS,
                 queue_size=GRAPH_QUEUE_SIZE, show_progress=True):
        self.service = service
        self.playlist_regex = playlist_regex
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.show_progress = show_progress

    def matching_playlists(self):
        """The current user's playlists whose names match the configured regex."""
        try:
            matcher = re.compile(self.playlist_regex)
        except re.error as e:
            raise FetchError(f"Invalid playlist regex {self.playlist_regex!r}: {e}") from e

        logger.debug(f"Matching playlists against {self.playlist_regex!r}")
        playlists = [
            PlaylistRef.from_spotify(playlist)
            for playlist in self.service.list_playlists()
            if matcher.search(playlist.get('name') or "")
        ]
        logger.info(f"{len(playlists)} playlists match {self.playlist_regex!r}")
        return playlists

    def fetch(self):
        """
        Fetch every matching playlist and aggregate the tracks.

        Returns:
            TrackGraph

        Raises:
            FetchError: Listing playlists or paginating any playlist failed
        """
        playlists = self.matching_playlists()

        graph = TrackGraph()
        batches = queue.Queue(maxsize=self.queue_size)
        abort = threading.Event()
        aggregator_errors = []
        failures = []

        aggregator = threading.Thread(
            target=self._aggregate,
            args=(graph, batches, abort, aggregator_errors),
            name="graph-aggregator",
            daemon=True
        )
        aggregator.start()

        progress_bar = create_progress_bar(
            total=len(playlists), desc="Fetching playlists", unit="playlist",
            disable=not self.show_progress
        )
        try:
            with ThreadPoolExecutor(max_workers=max(1, self.max_workers)) as executor:
                futures = {
                    executor.submit(self._paginate, playlist, batches, abort): playlist
                    for playlist in playlists
                }
                for future in as_completed(futures):
                    playlist = futures[future]
                    try:
                        future.result()
                    except Exception as e:
                        logger.error(f"Failed to fetch playlist '{playlist.name}': {e}")
                        abort.set()
                        failures.append((playlist, e))
                    update_progress_bar(progress_bar)
            # Every worker has stopped sending once the executor has shut down
        finally:
            close_progress_bar(progress_bar)
            batches.put(_DONE)
            # The aggregator has drained everything sent before _DONE once it exits
            aggregator.join()

        if failures:
            playlist, error = failures[0]
            raise FetchError(f"Failed to fetch playlist '{playlist.name}' ({playlist.id}): {error}") from error
        if aggregator_errors:
            raise FetchError(f"Failed to aggregate playlist tracks: {aggregator_errors[0]}") from aggregator_errors[0]

        logger.info(f"Loaded {len(graph.tracks)} Spotify tracks from {len(playlists)} playlists")
        return graph

    def _paginate(self, playlist, batches, abort):
        """Worker: page through one playlist and send each page to the aggregator."""
        logger.info(f"Processing playlist '{playlist.name}'")
        offset = 0
        while offset is not None and not abort.is_set():
            tracks, next_offset = self.service.list_playlist_tracks(playlist.id, offset, PAGE_SIZE)
            logger.info(f"Received {len(tracks)} tracks from '{playlist.name}' at offset {offset}")
            if tracks:
                batches.put(PlaylistBatch(playlist=playlist, tracks=tracks, user_id=playlist.owner_id))
            offset = next_offset

    @staticmethod
    def _aggregate(graph, batches, abort, errors):
        """Aggregator: the only writer of the graph. Drains the queue until _DONE."""
        while True:
            batch = batches.get()
            if batch is _DONE:
                break
            if errors:
                # Keep draining so no worker blocks on a full queue
                continue
            try:
                graph.add_batch(batch)
            except Exception as e:
                logger.error(f"Failed to aggregate tracks of '{batch.playlist.name}': {e}")
                errors.append(e)
                abort.set()

def fetch_track_graph(service, playlist_regex, show_progress=True):
    """Fetch the track graph for the playlists matching playlist_regex."""
    return GraphFetcher(service, playlist_regex, show_progress=show_progress).fetch()
