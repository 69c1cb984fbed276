#!/usr/bin/env python3
"""
Unit tests for music_files module.

Tags are held in real mutagen tag containers attached to mocked audio
objects, so no audio fixtures are needed.
"""

import unittest
import tempfile
import os
import shutil
import sys
from unittest.mock import Mock, patch

import mutagen
from mutagen.id3 import ID3, COMM, TIT2, TPE1
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4, MP4Tags

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import LibraryError, SaveError
from music_files import (
    ID3MusicFile, MP4MusicFile, find_music_paths, get_all_files, load_dir, open_music_file
)


def id3_audio():
    audio = Mock(spec=MP3)
    audio.tags = ID3()
    return audio


def mp4_audio():
    audio = Mock(spec=MP4)
    audio.tags = MP4Tags()
    return audio


class TestID3MusicFile(unittest.TestCase):

    def test_read_tags(self):
        audio = id3_audio()
        audio.tags.add(TIT2(encoding=3, text=["Kiara\x00"]))
        audio.tags.add(TPE1(encoding=3, text=["Bonobo"]))
        audio.tags.add(COMM(encoding=3, lang="eng", desc="", text=["★★★☆☆"]))
        audio.tags.add(COMM(encoding=3, lang="XXX", desc="iTunNORM", text=["0000041A"]))

        music_file = ID3MusicFile("/music/kiara.mp3", audio)
        self.assertEqual(music_file.title, "Kiara")
        self.assertEqual(music_file.artist, "Bonobo")
        self.assertEqual(music_file.comment, "★★★☆☆")
        self.assertEqual(music_file.genre, "")
        self.assertEqual(music_file.year, "")
        self.assertEqual(music_file.filename, "kiara.mp3")
        self.assertEqual(music_file.directory, "/music")

    def test_write_tags(self):
        audio = id3_audio()
        audio.tags.add(COMM(encoding=3, lang="eng", desc="old", text=["old comment"]))

        music_file = ID3MusicFile("/music/kiara.mp3", audio)
        music_file.genre = "deep house"
        music_file.year = "2010"
        music_file.comment = "★★★★☆"

        self.assertEqual(music_file.genre, "deep house")
        self.assertEqual(music_file.year, "2010")
        self.assertEqual(music_file.comment, "★★★★☆")
        self.assertEqual(len(audio.tags.getall("COMM")), 1)
        audio.save.assert_not_called()

    def test_adds_missing_tags(self):
        audio = Mock(spec=MP3)
        audio.tags = None
        audio.add_tags.side_effect = lambda: setattr(audio, "tags", ID3())

        music_file = ID3MusicFile("/music/untagged.mp3", audio)
        self.assertEqual(music_file.title, "")
        audio.add_tags.assert_called_once()

    def test_save(self):
        audio = id3_audio()
        ID3MusicFile("/music/kiara.mp3", audio).save()
        audio.save.assert_called_once()

    def test_save_error(self):
        audio = id3_audio()
        audio.save.side_effect = mutagen.MutagenError("read-only")
        with self.assertRaises(SaveError) as ctx:
            ID3MusicFile("/music/kiara.mp3", audio).save()
        self.assertEqual(ctx.exception.path, "/music/kiara.mp3")


class TestMP4MusicFile(unittest.TestCase):

    def test_read_and_write(self):
        audio = mp4_audio()
        audio.tags["\xa9nam"] = ["Roygbiv"]
        audio.tags["\xa9ART"] = ["Boards of Canada"]
        audio.tags["\xa9cmt"] = ["6A - Energy 2"]

        music_file = MP4MusicFile("/music/roygbiv.m4a", audio)
        self.assertEqual(music_file.title, "Roygbiv")
        self.assertEqual(music_file.artist, "Boards of Canada")
        self.assertEqual(music_file.comment, "6A - Energy 2")

        music_file.genre = "idm"
        music_file.year = "1998"
        self.assertEqual(audio.tags["\xa9gen"], ["idm"])
        self.assertEqual(audio.tags["\xa9day"], ["1998"])


class TestOpenMusicFile(unittest.TestCase):

    @patch('music_files.mutagen.File')
    def test_mp4(self, mock_file):
        mock_file.return_value = mp4_audio()
        self.assertIsInstance(open_music_file("/music/a.m4a"), MP4MusicFile)

    @patch('music_files.mutagen.File')
    def test_mp3(self, mock_file):
        mock_file.return_value = id3_audio()
        self.assertIsInstance(open_music_file("/music/a.mp3"), ID3MusicFile)

    @patch('music_files.mutagen.File', return_value=None)
    def test_unknown_format(self, mock_file):
        self.assertIsNone(open_music_file("/music/a.mp3"))

    @patch('music_files.mutagen.File', side_effect=mutagen.MutagenError("bad header"))
    def test_read_error(self, mock_file):
        with self.assertRaises(LibraryError):
            open_music_file("/music/a.mp3")


class TestLoadDir(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        os.makedirs(os.path.join(self.test_dir, "b"))
        for name in ["b/2.mp3", "1.M4A", "cover.jpg", "notes.txt"]:
            with open(os.path.join(self.test_dir, name), "w") as f:
                f.write("")

    def tearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def test_find_music_paths(self):
        paths = find_music_paths(self.test_dir)
        self.assertEqual(paths, [
            os.path.join(self.test_dir, "1.M4A"),
            os.path.join(self.test_dir, "b", "2.mp3"),
        ])

    @patch('music_files.open_music_file')
    def test_load_dir_skips_untaggable(self, mock_open):
        tagged = Mock(artist="A", title="T")
        mock_open.side_effect = [tagged, None]

        files = load_dir(self.test_dir)
        self.assertEqual(files, [tagged])
        self.assertEqual(mock_open.call_count, 2)

    def test_missing_directory(self):
        with self.assertRaises(LibraryError):
            load_dir(os.path.join(self.test_dir, "nope"))

    @patch('music_files.open_music_file')
    def test_get_all_files(self, mock_open):
        mock_open.return_value = Mock(artist="A", title="T")
        files = get_all_files([self.test_dir, os.path.join(self.test_dir, "b")])
        self.assertEqual(len(files), 3)


if __name__ == '__main__':
    unittest.main()
