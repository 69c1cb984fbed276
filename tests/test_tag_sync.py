#!/usr/bin/env python3
"""
Unit tests for tag_sync module.
"""

import unittest
import subprocess
import os
import sys
from unittest.mock import Mock, patch

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import FetchError, LibraryError, SaveError
from itunes_library import MetadataRecord
from tag_sync import (
    FileContext, TagSyncOrchestrator, delete_from_itunes, files_to_contexts, hydrate_metadata,
    hydrate_spotify, left_outer_join, remove_unwanted
)
from track_graph import PlaylistRef, SongKey, TrackGraph


class FakeMusicFile:
    """In-memory music file that counts saves."""

    def __init__(self, artist, title, genre="", year="", comment="", path=None, fail_save=False):
        self.artist = artist
        self.title = title
        self.genre = genre
        self.year = year
        self.comment = comment
        self.path = path or f"/music/{artist} - {title}.mp3"
        self.fail_save = fail_save
        self.saves = 0

    def save(self):
        if self.fail_save:
            raise SaveError(self.path, "read-only file system")
        self.saves += 1


def make_graph(*entries):
    """entries: (artist, title, track_id, [playlist names])"""
    graph = TrackGraph(user_id="user1")
    for artist, title, track_id, playlists in entries:
        key = SongKey(artist, title)
        graph.tracks[key] = {'id': track_id, 'name': title, 'artists': [{'name': artist}],
                             'album': {'id': f"album-{track_id}"}}
        graph.playlists[key] = [PlaylistRef(f"p-{name}", name, "user1") for name in playlists]
    return graph


class TestJoin(unittest.TestCase):

    def test_files_to_contexts_later_file_wins(self):
        first = FakeMusicFile("A", "T", path="/a.mp3")
        second = FakeMusicFile("A", "T", path="/b.mp3")
        contexts = files_to_contexts([first, second])
        self.assertEqual(len(contexts), 1)
        self.assertIs(contexts[SongKey("A", "T")].file, second)

    def test_hydrate(self):
        graph = make_graph(("A", "T", "t1", ["Rock"]))
        records = [MetadataRecord(name="T", artist="A", rating=80, track_id=7)]
        contexts = files_to_contexts([FakeMusicFile("A", "T"), FakeMusicFile("B", "U")])

        hydrate_spotify(contexts, graph)
        hydrate_metadata(contexts, records)

        matched = contexts[SongKey("A", "T")]
        self.assertEqual(matched.spotify_track['id'], "t1")
        self.assertEqual(matched.playlist_names(), ["Rock"])
        self.assertEqual(matched.metadata.track_id, 7)

        unmatched = contexts[SongKey("B", "U")]
        self.assertIsNone(unmatched.spotify_track)
        self.assertEqual(unmatched.spotify_playlists, [])
        self.assertIsNone(unmatched.metadata)

    def test_left_outer_join(self):
        graph = make_graph(("A", "T", "t1", ["Rock"]), ("B", "U", "t2", ["Rock"]))
        files = [FakeMusicFile("A", "T"), FakeMusicFile("", "Untitled"), FakeMusicFile("C", "V")]

        missing = left_outer_join(files, graph)
        self.assertEqual(list(missing), [SongKey("B", "U")])
        # The graph itself is left intact
        self.assertEqual(len(graph.tracks), 2)


class TestTagSyncOrchestrator(unittest.TestCase):

    def setUp(self):
        self.service = Mock()
        self.service.get_album.return_value = {'release_date': '1999-03-14'}
        self.orchestrator = TagSyncOrchestrator(
            self.service,
            comment_removals=["Bought at Store"],
            tag_replacements={":": ""},
            tag_removals=["misc"]
        )

    def test_update_year(self):
        music_file = FakeMusicFile("A", "T")
        graph = make_graph(("A", "T", "t1", []))

        summary = self.orchestrator.sync([music_file], graph, [])
        self.assertEqual(music_file.year, "1999")
        self.assertEqual(music_file.saves, 1)
        self.assertEqual(summary.updated, 1)
        self.service.get_album.assert_called_once_with("album-t1")

    def test_existing_year_is_kept(self):
        music_file = FakeMusicFile("A", "T", year="2001")
        graph = make_graph(("A", "T", "t1", []))

        self.orchestrator.sync([music_file], graph, [])
        self.assertEqual(music_file.year, "2001")
        self.service.get_album.assert_not_called()
        self.assertEqual(music_file.saves, 0)

    def test_album_failure_stops_sync(self):
        self.service.get_album.side_effect = FetchError("Spotify album lookup failed: 500")
        first = FakeMusicFile("A", "T")
        graph = make_graph(("A", "T", "t1", []))

        with self.assertRaises(FetchError) as ctx:
            self.orchestrator.sync([first], graph, [])
        self.assertIn(first.path, str(ctx.exception))
        self.assertEqual(first.saves, 0)

    def test_update_comment(self):
        music_file = FakeMusicFile("A", "T", comment="6A - Energy 2 - ★★☆☆☆ - Bought at Store 0000041A 00000329")
        records = [MetadataRecord(name="T", artist="A", rating=80)]

        self.orchestrator.sync([music_file], TrackGraph(), records)
        self.assertEqual(music_file.comment, "6A - Energy 2 - ★★★★☆")
        self.assertEqual(music_file.saves, 1)

    def test_unrated_track_loses_rating_bar(self):
        music_file = FakeMusicFile("A", "T", comment="★★★☆☆ - Nice")
        records = [MetadataRecord(name="T", artist="A", rating=0)]

        self.orchestrator.sync([music_file], TrackGraph(), records)
        self.assertEqual(music_file.comment, "Nice")

    def test_out_of_range_rating_writes_no_bar(self):
        music_file = FakeMusicFile("A", "T", comment="★★★☆☆ - Nice")
        records = [MetadataRecord(name="T", artist="A", rating=120)]

        self.orchestrator.sync([music_file], TrackGraph(), records)
        self.assertEqual(music_file.comment, "Nice")
        self.assertNotIn("★", music_file.comment)
        self.assertNotIn("☆", music_file.comment)

    def test_comment_unchanged(self):
        music_file = FakeMusicFile("A", "T", comment="★★★☆☆ - Nice")
        records = [MetadataRecord(name="T", artist="A", rating=60)]

        summary = self.orchestrator.sync([music_file], TrackGraph(), records)
        self.assertEqual(music_file.saves, 0)
        self.assertEqual(summary.updated, 0)
        self.assertEqual(summary.itunes_matches, 1)

    def test_update_genre(self):
        music_file = FakeMusicFile("A", "T", genre="misc", year="2000")
        graph = make_graph(("A", "T", "t1", ["House: Deep", "Late Night"]))

        self.orchestrator.sync([music_file], graph, [])
        self.assertEqual(music_file.genre, "deep house late night")

    def test_single_save_for_all_changes(self):
        music_file = FakeMusicFile("A", "T", comment="old")
        graph = make_graph(("A", "T", "t1", ["Rock"]))
        records = [MetadataRecord(name="T", artist="A", rating=100)]

        summary = self.orchestrator.sync([music_file], graph, records)
        self.assertEqual(music_file.year, "1999")
        self.assertEqual(music_file.comment, "★★★★★ - old")
        self.assertEqual(music_file.genre, "rock")
        self.assertEqual(music_file.saves, 1)
        self.assertEqual(summary.files, 1)
        self.assertEqual(summary.spotify_matches, 1)

    def test_unmatched_file_untouched(self):
        music_file = FakeMusicFile("Nobody", "Nothing", genre="rock")
        summary = self.orchestrator.sync([music_file], make_graph(("A", "T", "t1", ["Rock"])), [])
        self.assertEqual(music_file.genre, "rock")
        self.assertEqual(music_file.saves, 0)
        self.assertEqual(summary.updated, 0)

    def test_save_error_propagates(self):
        music_file = FakeMusicFile("A", "T", fail_save=True)
        graph = make_graph(("A", "T", "t1", ["Rock"]))
        with self.assertRaises(SaveError):
            self.orchestrator.sync([music_file], graph, [])

    def test_from_config(self):
        config = Mock()
        config.get.side_effect = lambda key, default=None: {
            "comment_removals": ["x"],
            "tag_replacements": {"a": "b"},
            "tag_removals": ["c"],
        }.get(key, default)

        orchestrator = TagSyncOrchestrator.from_config(self.service, config)
        self.assertEqual(orchestrator.comment_removals, ["x"])
        self.assertEqual(orchestrator.genre_reconciler.replacements, {"a": "b"})
        self.assertEqual(orchestrator.genre_reconciler.removals, ["c"])


class TestRemoveUnwanted(unittest.TestCase):

    def setUp(self):
        self.service = Mock()
        graph = make_graph(("A", "T", "t1", ["Rock", "Indie"]), ("B", "U", "t2", ["Rock"]))
        records = [MetadataRecord(name="T", artist="A", rating=20, track_id=42)]
        self.contexts = files_to_contexts([
            FakeMusicFile("A", "T", genre="delete rock"),
            FakeMusicFile("B", "U", genre="rock"),
        ])
        hydrate_spotify(self.contexts, graph)
        hydrate_metadata(self.contexts, records)

    @patch('tag_sync.subprocess.run')
    def test_removes_tagged_tracks(self, mock_run):
        removed = remove_unwanted(self.service, self.contexts, delete_tag="delete")

        self.assertTrue(removed)
        self.service.remove_track_from_playlist.assert_any_call("p-Rock", "t1")
        self.service.remove_track_from_playlist.assert_any_call("p-Indie", "t1")
        self.assertEqual(self.service.remove_track_from_playlist.call_count, 2)
        mock_run.assert_called_once()
        script = mock_run.call_args[0][0][2]
        self.assertIn("database ID is 42", script)
        self.assertTrue(script.strip().startswith('tell application "iTunes"'))
        self.assertTrue(script.strip().endswith("end tell"))
        self.assertIn('tell application "Finder" to delete floc', script)

    @patch('tag_sync.subprocess.run')
    def test_music_app(self, mock_run):
        remove_unwanted(self.service, self.contexts, delete_tag="delete", itunes_app="Music")
        script = mock_run.call_args[0][0][2]
        self.assertTrue(script.strip().startswith('tell application "Music"'))

    @patch('tag_sync.subprocess.run')
    def test_itunes_failure_leaves_spotify_untouched(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, "osascript")
        with self.assertRaises(LibraryError):
            remove_unwanted(self.service, self.contexts, delete_tag="delete")
        self.service.remove_track_from_playlist.assert_not_called()

    @patch('tag_sync.subprocess.run')
    def test_spotify_only(self, mock_run):
        removed = remove_unwanted(self.service, self.contexts, delete_tag="delete", remove_from_itunes=False)
        self.assertTrue(removed)
        mock_run.assert_not_called()

    @patch('tag_sync.subprocess.run')
    def test_nothing_tagged(self, mock_run):
        removed = remove_unwanted(self.service, self.contexts, delete_tag="unwanted")
        self.assertFalse(removed)
        self.service.remove_track_from_playlist.assert_not_called()
        mock_run.assert_not_called()

    def test_remote_failure_propagates(self):
        self.service.remove_track_from_playlist.side_effect = FetchError("Spotify playlist track removal failed")
        with self.assertRaises(FetchError):
            remove_unwanted(self.service, self.contexts, delete_tag="delete", remove_from_itunes=False)

    @patch('tag_sync.subprocess.run')
    def test_itunes_failure(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, "osascript")
        with self.assertRaises(LibraryError):
            delete_from_itunes(MetadataRecord(name="T", artist="A", track_id=42))


class TestFileContext(unittest.TestCase):

    def test_key(self):
        context = FileContext(file=FakeMusicFile("A\x00", "T "))
        self.assertEqual(context.key, SongKey("A", "T"))
        self.assertEqual(context.playlist_names(), [])


if __name__ == '__main__':
    unittest.main()
