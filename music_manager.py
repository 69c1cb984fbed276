#!/usr/bin/env python3
"""
Music Manager: keep a local music library, iTunes and Spotify playlists in step.

Commands:
    refresh-spotify          Re-fetch the matching Spotify playlists into the cache
    tag-files                Write year, rating comment and genre tags into local files
    create-missing-playlist  Collect Spotify tracks with no local file in one playlist
    remove-unwanted          Remove tracks tagged for deletion from Spotify and iTunes
    follow-artists           Follow the artists of highly rated iTunes tracks

The config file is saved when a command finishes, so ids created during the run
(such as the missing playlist's) are kept for the next one.
"""

import sys
import logging
import argparse

from config import Config
from errors import MusicManagerError
from graph_cache import GraphCache
from itunes_library import load_library
from missing_playlist import create_missing_playlist
from music_files import get_all_files
from print_utils import print_error, print_header, print_success, print_summary
from spotify_follow_artists import follow_rated_artists
from spotify_utils import create_spotify_client
from tag_sync import TagSyncOrchestrator, left_outer_join, remove_unwanted
from track_graph import GraphFetcher

logger = logging.getLogger(__name__)

def setup_logging(debug=False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

class MusicManager:
    """Wires the config, Spotify service and graph cache together for the commands."""

    def __init__(self, config, service, show_progress=True):
        self.config = config
        self.service = service
        self.show_progress = show_progress
        self.cache = GraphCache(config.get("cache_file"))

    def fetch_graph(self):
        fetcher = GraphFetcher(self.service, self.config.playlist_regex, show_progress=self.show_progress)
        return fetcher.fetch()

    def graph(self):
        """The cached track graph, fetched from Spotify when there's no snapshot yet."""
        return self.cache.get_or_fetch(self.fetch_graph)

    def local_files(self):
        return get_all_files(self.config.get("music_dirs", []), show_progress=self.show_progress)

    def refresh_spotify(self, args):
        graph = self.cache.refresh(self.fetch_graph)
        print_summary("Spotify refresh", [
            ("tracks", len(graph.tracks)),
            ("user", graph.user_id or "-"),
        ])

    def tag_files(self, args):
        graph = self.graph()
        files = self.local_files()
        records = load_library(self.config.itunes_library_path)

        orchestrator = TagSyncOrchestrator.from_config(self.service, self.config, show_progress=self.show_progress)
        summary = orchestrator.sync(files, graph, records)
        print_summary("Tag sync", [
            ("files", summary.files),
            ("on spotify", summary.spotify_matches),
            ("in itunes", summary.itunes_matches),
            ("updated", summary.updated),
        ])

    def create_missing_playlist(self, args):
        graph = self.graph()
        files = self.local_files()
        missing = left_outer_join(files, graph)
        logger.info(f"{len(missing)} Spotify tracks have no local file")

        added, skipped = create_missing_playlist(self.service, self.config, graph, missing)
        print_summary("Missing playlist", [
            ("playlist", self.config.output_playlist_id or "-"),
            ("added", added),
            ("skipped", skipped),
        ])

    def remove_unwanted(self, args):
        graph = self.graph()
        files = self.local_files()
        records = [] if args.spotify_only else load_library(self.config.itunes_library_path)

        orchestrator = TagSyncOrchestrator.from_config(self.service, self.config)
        contexts = orchestrator.build_contexts(files, graph, records)
        removed = remove_unwanted(
            self.service, contexts,
            delete_tag=self.config.get("delete_tag"),
            remove_from_itunes=not args.spotify_only,
            itunes_app=self.config.get("itunes_app")
        )
        if removed:
            # The snapshot still lists the removed tracks
            logger.info("Tracks were removed, refreshing Spotify cache")
            self.cache.refresh(self.fetch_graph)
            print_success("Unwanted tracks removed")
        else:
            print_success("Nothing to remove")

    def follow_artists(self, args):
        followed = follow_rated_artists(self.service, self.config, show_progress=self.show_progress)
        print_summary("Follow artists", [("followed", followed)])

def build_parser():
    parser = argparse.ArgumentParser(description="Keep local music, iTunes and Spotify playlists in step")
    parser.add_argument("--config", help="Path of the config file (default: ~/.music-manager/config.json)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-progress", action="store_true", help="Hide progress bars")

    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True
    subparsers.add_parser("refresh-spotify", help="Re-fetch the matching Spotify playlists into the cache")
    subparsers.add_parser("tag-files", help="Update year, comment and genre tags of local files")
    subparsers.add_parser("create-missing-playlist", help="Fill a playlist with Spotify tracks missing locally")
    remove = subparsers.add_parser("remove-unwanted", help="Remove tracks tagged for deletion")
    remove.add_argument("--spotify-only", action="store_true", help="Leave the iTunes library untouched")
    subparsers.add_parser("follow-artists", help="Follow artists of highly rated iTunes tracks")
    return parser

COMMANDS = {
    "refresh-spotify": MusicManager.refresh_spotify,
    "tag-files": MusicManager.tag_files,
    "create-missing-playlist": MusicManager.create_missing_playlist,
    "remove-unwanted": MusicManager.remove_unwanted,
    "follow-artists": MusicManager.follow_artists,
}

def main(argv=None):
    """Main function to run a Music Manager command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.debug)
    if args.debug:
        logger.debug("Debug logging enabled")

    config = None
    try:
        config = Config(args.config)
        print_header(f"Music Manager: {args.command}")
        service = create_spotify_client()
        manager = MusicManager(config, service, show_progress=not args.no_progress)
        COMMANDS[args.command](manager, args)
    except MusicManagerError as e:
        logger.error(e.message)
        print_error(f"{args.command} failed: {e.message}")
        return 1
    finally:
        if config is not None:
            try:
                config.save_config()
            except MusicManagerError as e:
                logger.error(e.message)
    return 0

if __name__ == "__main__":
    sys.exit(main())
