#!/usr/bin/env python3
"""
Structured music file comments.

A comment carries up to three segments joined by " - ":

    6A - Energy 2 - ★★★☆☆ - Anything else

1. A Mixed In Key prefix: a Camelot key ("6A", "4A/5A" or "All") and an
   energy level.
2. A five glyph rating bar, ★ for each star and ☆ for the rest.
3. Free text.

Parsing never fails. Text that doesn't match the grammar ends up in the
free text segment.
"""

import re
import logging
from dataclasses import dataclass

from constants import FULL_GLYPH, EMPTY_GLYPH, MAX_RATING

logger = logging.getLogger(__name__)

SEPARATOR = " - "

MIXED_IN_KEY_REGEX = re.compile(r"^(([0-9]{1,2}[AB])/?([0-9]{1,2}[AB])?|All) - Energy [0-9]{1,2}\s?-?\s?")
RATING_REGEX = re.compile(f"([{FULL_GLYPH}{EMPTY_GLYPH}]{{2,5}})\\s?-?\\s?")
# Runs of hex words left behind by iTunes' normalisation data, e.g. "0000041A 00000329"
GARBAGE_REGEX = re.compile(r"(?:\s?\b[0-9A-F]{8,16}\b)+")

@dataclass
class Comment:
    """A parsed file comment."""
    key: str = ""
    energy: str = ""
    comment: str = ""
    rating: int = 0

    def format(self):
        """
        Render the comment as "[Key - Energy][ - Rating][ - Comment]".

        The rating bar is only written for ratings 1 to 5. A rating of 0 or
        anything above 5 is left out.
        """
        parts = []
        if self.key and self.energy:
            parts.extend([self.key, self.energy])
        if 0 < self.rating <= MAX_RATING:
            parts.append(FULL_GLYPH * self.rating + EMPTY_GLYPH * (MAX_RATING - self.rating))
        text = self.comment.strip(" -")
        if text:
            parts.append(text)
        return SEPARATOR.join(parts)

    def __str__(self):
        return self.format()

    def filter(self, filters):
        """Remove every occurrence of each filter string from the free text."""
        for value in filters:
            if value:
                self.comment = self.comment.replace(value, "")

    def remove_garbage(self):
        """Remove runs of hex encoded encoder data from the free text."""
        self.comment = GARBAGE_REGEX.sub("", self.comment)

def parse_comment(raw):
    """
    Parse a raw comment string.

    Args:
        raw: The comment as stored in the file

    Returns:
        Comment with key, energy, rating and the remaining free text
    """
    raw = raw or ""
    comment = Comment()

    # Grab the current rating from the comment
    rating_match = RATING_REGEX.search(raw)
    stars = rating_match.group(0) if rating_match else ""
    comment.rating = stars.count(FULL_GLYPH)

    # Mixed In Key values: camelot key and energy
    mik_match = MIXED_IN_KEY_REGEX.match(raw)
    mik_value = mik_match.group(0) if mik_match else ""
    mik_parts = mik_value.rstrip(" -").split(SEPARATOR)
    logger.debug(f"Comment split: mik={mik_parts} stars={stars!r}")
    if len(mik_parts) == 2:
        comment.key, comment.energy = mik_parts

    # The free text is whatever is left after removing the rating and mik strings
    remainder = raw.replace(mik_value, "", 1) if mik_value else raw
    remainder = remainder.replace(stars, "", 1) if stars else remainder
    comment.comment = remainder.strip(" -")
    return comment

def format_comment(comment):
    """Render a Comment back to its string form."""
    return comment.format()
