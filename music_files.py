#!/usr/bin/env python3
"""
Local music files.

Every supported file is wrapped in a MusicFile that exposes the handful of
tags Music Manager reads and writes (title, artist, genre, year, comment)
whatever the on-disk tag format. The backend is picked by probing the file
with mutagen:

- MP3 files carry ID3 frames (TIT2, TPE1, TCON, TDRC, COMM)
- M4A files carry MP4 atoms (©nam, ©ART, ©gen, ©day, ©cmt)
"""

import os
import logging

import mutagen
from mutagen.id3 import ID3, COMM, TCON, TDRC, TIT2, TPE1
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4

from constants import SUPPORTED_EXTENSIONS
from errors import LibraryError, SaveError
from tqdm_utils import progress_bar, update_progress_bar

logger = logging.getLogger(__name__)

COMMENT_LANGUAGE = "eng"

class MusicFile:
    """
    A local music file and its tags.

    Values are read with trailing NUL padding removed. Setters only change
    the in-memory tags; nothing touches the disk until save().
    """

    def __init__(self, path, audio):
        self.path = path
        self._audio = audio
        if self._audio.tags is None:
            self._audio.add_tags()

    @property
    def filename(self):
        return os.path.basename(self.path)

    @property
    def directory(self):
        return os.path.dirname(self.path)

    @property
    def title(self):
        return self._read_clean("title")

    @property
    def artist(self):
        return self._read_clean("artist")

    @property
    def genre(self):
        return self._read_clean("genre")

    @genre.setter
    def genre(self, value):
        self._write("genre", value)

    @property
    def year(self):
        return self._read_clean("year")

    @year.setter
    def year(self, value):
        self._write("year", value)

    @property
    def comment(self):
        return self._read_clean("comment")

    @comment.setter
    def comment(self, value):
        self._write("comment", value)

    def save(self):
        """
        Write the tags back to disk.

        Raises:
            SaveError: mutagen couldn't write the file
        """
        try:
            self._audio.save()
        except (mutagen.MutagenError, OSError) as e:
            raise SaveError(self.path, e) from e
        logger.debug(f"Saved tags of {self.path}")

    def _read_clean(self, field):
        return (self._read(field) or "").rstrip("\x00")

    def _read(self, field):
        raise NotImplementedError

    def _write(self, field, value):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.path!r})"

class ID3MusicFile(MusicFile):
    """MP3 file with ID3v2 frames."""

    FRAMES = {
        "title": TIT2,
        "artist": TPE1,
        "genre": TCON,
        "year": TDRC,
    }

    def _read(self, field):
        tags = self._audio.tags
        if field == "comment":
            # Only English comments, iTunes keeps its own data in other frames
            return "".join(
                str(text)
                for frame in tags.getall("COMM")
                if frame.lang == COMMENT_LANGUAGE
                for text in frame.text
            )
        frame = tags.get(self.FRAMES[field].__name__)
        if frame is None or not frame.text:
            return ""
        return str(frame.text[0])

    def _write(self, field, value):
        tags = self._audio.tags
        if field == "comment":
            tags.delall("COMM")
            tags.add(COMM(encoding=3, lang=COMMENT_LANGUAGE, desc="", text=[value]))
            return
        frame_class = self.FRAMES[field]
        tags.setall(frame_class.__name__, [frame_class(encoding=3, text=[value])])

class MP4MusicFile(MusicFile):
    """M4A/AAC file with MP4 atoms."""

    ATOMS = {
        "title": "\xa9nam",
        "artist": "\xa9ART",
        "genre": "\xa9gen",
        "year": "\xa9day",
        "comment": "\xa9cmt",
    }

    def _read(self, field):
        values = self._audio.tags.get(self.ATOMS[field])
        if not values:
            return ""
        return str(values[0])

    def _write(self, field, value):
        self._audio.tags[self.ATOMS[field]] = [value]

def open_music_file(path):
    """
    Open a music file, choosing the tag backend by probing its contents.

    Returns:
        MusicFile, or None when the file isn't a format we can tag

    Raises:
        LibraryError: The file couldn't be read
    """
    try:
        audio = mutagen.File(path)
    except (mutagen.MutagenError, OSError) as e:
        raise LibraryError(f"Failed to read tags of {path}: {e}") from e

    if isinstance(audio, MP4):
        return MP4MusicFile(path, audio)
    if isinstance(audio, MP3) or (audio is not None and isinstance(audio.tags, ID3)):
        return ID3MusicFile(path, audio)
    return None

def find_music_paths(directory):
    """Paths of the supported music files under directory, recursively and in a stable order."""
    paths = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            if os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                paths.append(os.path.join(root, name))
            else:
                logger.debug(f"Skipping {name}: unsupported extension")
    return paths

def load_dir(directory, show_progress=False):
    """
    Load every supported music file under a directory.

    Raises:
        LibraryError: The directory doesn't exist or a file couldn't be read
    """
    if not os.path.isdir(directory):
        raise LibraryError(f"Music directory {directory} does not exist")

    paths = find_music_paths(directory)
    logger.info(f"Loading {len(paths)} music files from {directory}")

    files = []
    with progress_bar(len(paths), "Reading tags", "file", disable=not show_progress) as bar:
        for path in paths:
            music_file = open_music_file(path)
            update_progress_bar(bar)
            if music_file is None:
                logger.debug(f"Skipping {path}: no taggable audio found")
                continue
            logger.debug(f"Found music track {music_file.artist} - {music_file.title} ({path})")
            files.append(music_file)
    return files

def get_all_files(directories, show_progress=False):
    """Load the music files of every configured directory."""
    files = []
    for directory in directories:
        files.extend(load_dir(directory, show_progress=show_progress))
    logger.info(f"Found {len(files)} local music files")
    return files
