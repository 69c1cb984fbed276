#!/usr/bin/env python3
"""
Tag synchronisation between local files, Spotify and iTunes.

Local files are joined by SongKey with the Spotify track graph and with the
iTunes library. Each joined file then runs through the tag processors in
order (year, comment, genre). A file that any processor changed is saved
once.

The first error stops the run. Files saved before the error keep their new
tags, nothing is rolled back.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional

from comment_parser import parse_comment
from constants import ITUNES_RATING_STEP, DEFAULT_DELETE_TAG, DEFAULT_ITUNES_APP
from errors import FetchError, LibraryError
from genre_reconciler import GenreReconciler
from itunes_library import MetadataRecord
from spotify_utils import album_release_year
from track_graph import SongKey, PlaylistRef
from tqdm_utils import progress_bar, update_progress_bar

logger = logging.getLogger(__name__)

ITUNES_DELETE_SCRIPT = """
tell application "{app}"
    set theTrack to (some track of playlist "Library" whose database ID is {track_id})
    set floc to (get location of theTrack)
    delete theTrack
    tell application "Finder" to delete floc
end tell
"""

@dataclass
class FileContext:
    """A local file joined with what Spotify and iTunes know about it."""
    file: object
    spotify_track: Optional[dict] = None
    spotify_playlists: List[PlaylistRef] = field(default_factory=list)
    metadata: Optional[MetadataRecord] = None

    @property
    def key(self):
        return file_key(self.file)

    def playlist_names(self):
        return [playlist.name for playlist in self.spotify_playlists]

@dataclass
class SyncSummary:
    """Counts reported at the end of a tag sync."""
    files: int = 0
    spotify_matches: int = 0
    itunes_matches: int = 0
    updated: int = 0

def file_key(music_file):
    return SongKey.of(music_file.artist, music_file.title)

def files_to_contexts(files):
    """
    Key every local file by SongKey.

    Two files with the same artist and title collide; the later one wins.
    """
    contexts = {}
    for music_file in files:
        key = file_key(music_file)
        if key in contexts:
            logger.debug(f"Duplicate local file for {key}, keeping {music_file.path}")
        contexts[key] = FileContext(file=music_file)
    return contexts

def hydrate_spotify(contexts, graph):
    """Attach the Spotify track and its playlists to each context. Unmatched files are left alone."""
    for key, context in contexts.items():
        track = graph.tracks.get(key)
        if track is None:
            logger.debug(f"Couldn't find Spotify track for {key}")
            continue
        logger.debug(f"Found Spotify track {track.get('id')} for {key}")
        context.spotify_track = track
        context.spotify_playlists = list(graph.playlists.get(key, []))
    return contexts

def hydrate_metadata(contexts, records):
    """Attach the iTunes record to each context, matched on the same SongKey."""
    lookup = {SongKey.of(record.artist, record.name): record for record in records}
    for key, context in contexts.items():
        record = lookup.get(key)
        if record is not None:
            context.metadata = record
    return contexts

class TagSyncOrchestrator:
    """Runs the tag processors over every local file and saves what changed."""

    def __init__(self, service, comment_removals=None, tag_replacements=None, tag_removals=None,
                 show_progress=False):
        self.service = service
        self.comment_removals = list(comment_removals or [])
        self.genre_reconciler = GenreReconciler(tag_replacements, tag_removals)
        self.show_progress = show_progress
        self.processors = [
            ("year", self.update_year),
            ("comment", self.update_comment),
            ("genre", self.update_genre),
        ]

    @classmethod
    def from_config(cls, service, config, show_progress=False):
        return cls(
            service,
            comment_removals=config.get("comment_removals", []),
            tag_replacements=config.get("tag_replacements", {}),
            tag_removals=config.get("tag_removals", []),
            show_progress=show_progress
        )

    def build_contexts(self, files, graph, records):
        contexts = files_to_contexts(files)
        hydrate_spotify(contexts, graph)
        hydrate_metadata(contexts, records)
        return contexts

    def sync(self, files, graph, records):
        """
        Update the tags of every local file.

        Args:
            files: Local MusicFile objects
            graph: TrackGraph of the Spotify playlists
            records: iTunes MetadataRecord objects

        Returns:
            SyncSummary

        Raises:
            FetchError: An album lookup failed
            SaveError: A file couldn't be written
        """
        contexts = self.build_contexts(files, graph, records)
        summary = SyncSummary(
            files=len(contexts),
            spotify_matches=sum(1 for c in contexts.values() if c.spotify_track is not None),
            itunes_matches=sum(1 for c in contexts.values() if c.metadata is not None)
        )
        logger.info(
            f"Syncing tags of {summary.files} files "
            f"({summary.spotify_matches} on Spotify, {summary.itunes_matches} in iTunes)"
        )

        with progress_bar(len(contexts), "Tagging files", "file", disable=not self.show_progress) as bar:
            for context in contexts.values():
                if self.update_file(context):
                    summary.updated += 1
                update_progress_bar(bar)

        logger.info(f"Updated {summary.updated} of {summary.files} files")
        return summary

    def update_file(self, context):
        """
        Run every processor on one file and save it if any of them changed it.

        Returns:
            True if the file was saved
        """
        any_update = False
        for name, processor in self.processors:
            if processor(context):
                logger.debug(f"{name} changed {context.key}")
                any_update = True
        if not any_update:
            return False
        context.file.save()
        return True

    def update_year(self, context):
        """Fill an empty year from the release date of the Spotify album."""
        if context.spotify_track is None or context.file.year:
            return False

        album_id = (context.spotify_track.get('album') or {}).get('id')
        if not album_id:
            return False

        try:
            album = self.service.get_album(album_id)
        except FetchError as e:
            logger.error(f"Failed to get album {album_id} from Spotify to update year")
            raise FetchError(f"Failed to update year of {context.file.path}: {e}") from e

        year = album_release_year(album)
        if not year:
            return False
        context.file.year = year
        logger.info(f"Set year of {context.key} to {year}")
        return True

    def update_comment(self, context):
        """Write the iTunes star rating into the comment and clean out the junk."""
        if context.metadata is None:
            logger.debug(f"No iTunes track for {context.key}")
            return False

        old_comment = context.file.comment
        comment = parse_comment(old_comment)
        comment.rating = context.metadata.rating // ITUNES_RATING_STEP
        comment.filter(self.comment_removals)
        comment.remove_garbage()
        new_comment = comment.format()

        if new_comment == old_comment:
            logger.debug(f"No change in comment of {context.key}")
            return False

        logger.info(f"Updating comment of {context.key}: {old_comment!r} -> {new_comment!r}")
        context.file.comment = new_comment
        return True

    def update_genre(self, context):
        """Derive genre tags from the Spotify playlists the track is in."""
        old_genre = context.file.genre
        new_genre, changed = self.genre_reconciler.reconcile(old_genre, context.playlist_names())
        if not changed:
            return False

        logger.info(f"Adjusting genre of {context.key}: {old_genre!r} -> {new_genre!r}")
        context.file.genre = new_genre
        return True

def left_outer_join(files, graph):
    """
    Spotify tracks with no local file.

    Returns:
        Dict of SongKey to Spotify track, a copy of the graph's tracks minus
        every key a local file matched
    """
    tracks = dict(graph.tracks)
    for music_file in files:
        key = file_key(music_file)
        if not key.is_complete():
            logger.debug(f"Skipping unknown track {music_file.path}")
            continue
        if tracks.pop(key, None) is not None:
            logger.debug(f"Found Spotify track for {key}")
        else:
            logger.debug(f"Couldn't find Spotify track for local file {key}")
    return tracks

def delete_from_itunes(record, app=DEFAULT_ITUNES_APP):
    """
    Delete a track and its file through iTunes (macOS only).

    Args:
        record: MetadataRecord of the track
        app: Application holding the library, "iTunes" or "Music" on newer macOS

    Raises:
        LibraryError: osascript is missing or the script failed
    """
    script = ITUNES_DELETE_SCRIPT.format(app=app or DEFAULT_ITUNES_APP, track_id=record.track_id)
    try:
        subprocess.run(["osascript", "-e", script], check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError) as e:
        raise LibraryError(f"Failed to delete iTunes track {record.track_id}: {e}") from e

def remove_unwanted(service, contexts, delete_tag=DEFAULT_DELETE_TAG, remove_from_itunes=True,
                    itunes_app=DEFAULT_ITUNES_APP):
    """
    Remove every track whose genre carries the delete tag from iTunes and Spotify.

    A track is deleted from iTunes before it's removed from its Spotify
    playlists, so a failed iTunes delete leaves that track untouched on both.

    Args:
        service: SpotifyService
        contexts: Hydrated file contexts
        delete_tag: Genre tag marking a track for removal
        remove_from_itunes: Also delete the track from the iTunes library
        itunes_app: Application the iTunes delete script talks to

    Returns:
        True if anything was removed
    """
    delete_tag = delete_tag or DEFAULT_DELETE_TAG
    itunes_app = itunes_app or DEFAULT_ITUNES_APP
    did_remove = False
    logger.info(f"Removing tracks tagged '{delete_tag}'")

    for key, context in contexts.items():
        if delete_tag not in context.file.genre:
            continue

        logger.warning(f"Will remove {key}")

        if remove_from_itunes and context.metadata is not None:
            logger.warning(f"Removing {key} from {itunes_app}")
            delete_from_itunes(context.metadata, app=itunes_app)
            did_remove = True

        if context.spotify_track is not None:
            track_id = context.spotify_track.get('id')
            for playlist in context.spotify_playlists:
                logger.warning(f"Removing {key} ({track_id}) from playlist '{playlist.name}' ({playlist.id})")
                service.remove_track_from_playlist(playlist.id, track_id)
                did_remove = True

    return did_remove
