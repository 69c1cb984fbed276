#!/usr/bin/env python3
"""
Progress bars shared by the Music Manager commands.

Every bar has the same width and layout. Bars write to stderr so they never
interleave with the log lines on stdout, and can be disabled for tests and
non-interactive runs.
"""

from contextlib import contextmanager

from tqdm import tqdm

BAR_FORMAT = '{l_bar}{bar:30}{r_bar}{bar:-30b}'

def create_progress_bar(total, desc=None, unit="item", disable=False):
    """
    Create a Music Manager progress bar.

    Args:
        total: Number of steps, e.g. playlists to fetch or files to tag
        desc: Label shown in front of the bar
        unit: Name of one step ("playlist", "file", "artist")
        disable: Create a silent bar

    Returns:
        tqdm instance
    """
    return tqdm(
        total=total,
        desc=desc,
        unit=str(unit or "item"),
        bar_format=BAR_FORMAT,
        ncols=100,
        disable=disable
    )

def update_progress_bar(progress_bar, n=1):
    """Advance a bar by n steps. A missing bar is ignored."""
    if progress_bar is not None:
        progress_bar.update(n)

def close_progress_bar(progress_bar):
    if progress_bar is not None:
        progress_bar.close()

@contextmanager
def progress_bar(total, desc=None, unit="item", disable=False):
    """
    Progress bar that is closed when the block exits, including on errors.

    Usage:
        with progress_bar(len(paths), "Reading tags", "file") as bar:
            for path in paths:
                ...
                update_progress_bar(bar)
    """
    bar = create_progress_bar(total, desc=desc, unit=unit, disable=disable)
    try:
        yield bar
    finally:
        close_progress_bar(bar)
