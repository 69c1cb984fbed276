#!/usr/bin/env python3
"""
Keep a Spotify playlist of the tracks that exist in the matching playlists
but have no local file.
"""

import logging

from constants import ADD_TRACKS_BATCH_SIZE
from spotify_utils import artist_names, batched

logger = logging.getLogger(__name__)

def create_missing_playlist(service, config, graph, tracks):
    """
    Fill the output playlist with the given tracks.

    The playlist is created the first time and its id stored in the config.
    On later runs it's cleared and refilled.

    Args:
        service: SpotifyService
        config: Config holding the output playlist id and name
        graph: TrackGraph the tracks came from
        tracks: Dict of SongKey to Spotify track, usually from left_outer_join

    Returns:
        tuple: (added, skipped)
    """
    if not tracks:
        logger.info("Nothing to do, every Spotify track has a local file")
        return 0, 0

    user_id = graph.user_id or service.current_user_id()
    playlist_id = config.output_playlist_id

    if not playlist_id:
        name = config.output_playlist_name
        playlist = service.create_playlist(user_id, name, public=False)
        playlist_id = playlist['id']
        config.output_playlist_id = playlist_id
        logger.info(f"Created missing playlist '{name}' ({playlist_id}) for {user_id}")
    else:
        logger.info(f"Clearing existing missing playlist {playlist_id}")
        service.replace_playlist_tracks(playlist_id, [])

    track_ids = []
    skipped = 0
    for key, track in tracks.items():
        if not track.get('id'):
            logger.warning(f"Skipping track with no id: {track.get('name', key.title)}")
            skipped += 1
            continue
        logger.info(
            f"Adding {', '.join(artist_names(track))} - {track.get('name')} ({track['id']}), "
            f"in playlists {graph.playlist_names(key)}"
        )
        track_ids.append(track['id'])

    for batch in batched(track_ids, ADD_TRACKS_BATCH_SIZE):
        logger.debug(f"Adding {len(batch)} tracks to playlist {playlist_id}")
        service.add_tracks_to_playlist(playlist_id, batch)

    logger.info(f"Playlist {playlist_id} updated: {len(track_ids)} added, {skipped} skipped")
    return len(track_ids), skipped
