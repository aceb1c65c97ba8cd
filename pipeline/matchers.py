#!/usr/bin/env python3
"""
Token matchers for checksums, dictionary keywords and release groups.

Each matcher takes the classification context and a token index and
returns a Claim or None. Numeric matchers live in number_matchers.
"""

from __future__ import annotations

import re
from typing import Optional

from .claims import Claim, ClassifierContext
from .elements import ElementCategory
from .number_matchers import is_crc32, is_resolution, match_prefixed_number
from .token_search import find_next, find_prev, join_contents
from .tokenizer import OPEN_BRACKETS, TokenCategory

STANDALONE_SEASON = re.compile(r"S(\d{1,2})", re.IGNORECASE)


def match_checksum(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """An enclosed 8-digit hexadecimal CRC32: "[B1A4C5D6]"."""
    token = ctx.tokens[index]
    if token.category != TokenCategory.UNKNOWN or not token.enclosed:
        return None
    if not is_crc32(token.content):
        return None
    return Claim(entries=((ElementCategory.FILE_CHECKSUM, token.content),), indices=(index,))


def _match_season(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """ "2nd Season", "Second Season" and "Season 2"."""
    prev_index = find_prev(ctx.tokens, index)
    if prev_index is not None and ctx.tokens[prev_index].category == TokenCategory.UNKNOWN:
        number = ctx.keywords.ordinal_to_number(ctx.tokens[prev_index].content)
        if number:
            return Claim(entries=((ElementCategory.ANIME_SEASON, number),), indices=(prev_index, index))

    next_index = find_next(ctx.tokens, index)
    if next_index is not None and ctx.tokens[next_index].category == TokenCategory.UNKNOWN:
        content = ctx.tokens[next_index].content
        if content.isdecimal():
            return Claim(entries=((ElementCategory.ANIME_SEASON, content),), indices=(index, next_index))
    return None


def match_keyword(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """
    Dictionary keywords plus the pattern-shaped identifiers found alongside them.

    Besides plain keywords this recognises season and episode/volume
    prefixes with their numbers, release versions ("v2" is stored as "2"),
    resolutions ("1080p", "1920x1080") and standalone seasons ("S2").
    """
    token = ctx.tokens[index]
    if token.category != TokenCategory.UNKNOWN:
        return None
    word = token.content.strip(" -")
    if not word or word.isdecimal():
        return None

    keyword = ctx.keywords.find(word)
    if keyword is None:
        if is_resolution(word):
            return Claim(entries=((ElementCategory.VIDEO_RESOLUTION, word),), indices=(index,))
        match = STANDALONE_SEASON.fullmatch(word)
        if match and ElementCategory.ANIME_SEASON not in ctx.elements:
            return Claim(entries=((ElementCategory.ANIME_SEASON, match.group(1)),), indices=(index,))
        return None

    category = keyword.category
    if not category.is_searchable() or not keyword.searchable:
        return None
    if category == ElementCategory.RELEASE_GROUP and not ctx.options.parse_release_group:
        return None
    if category.is_singular() and category in ctx.elements:
        return None

    if category == ElementCategory.ANIME_SEASON_PREFIX:
        return _match_season(ctx, index)
    if category == ElementCategory.EPISODE_PREFIX:
        if not keyword.valid or not ctx.options.parse_episode_number:
            return None
        return match_prefixed_number(ctx, index, ElementCategory.EPISODE_NUMBER)
    if category == ElementCategory.VOLUME_PREFIX:
        return match_prefixed_number(ctx, index, ElementCategory.VOLUME_NUMBER)
    if category == ElementCategory.RELEASE_VERSION:
        word = word[1:]

    return Claim(entries=((category, word),), indices=(index,), identify=keyword.identifiable)


def match_leading_release_group(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """
    The first bracket group at the start of the name, when it holds plain text.

    Only groups before any free-standing text are considered. The group must
    be entirely unclaimed, must not be a bare number and must not be a
    blacklisted word such as "Anime".
    """
    tokens = ctx.tokens
    token = tokens[index]
    if token.category != TokenCategory.BRACKET or token.content not in OPEN_BRACKETS:
        return None
    if any(not t.enclosed and t.category not in (TokenCategory.BRACKET, TokenCategory.DELIMITER)
           for t in tokens[:index]):
        return None

    close_index = next((i for i in range(index + 1, len(tokens))
                        if tokens[i].category == TokenCategory.BRACKET), None)
    if close_index is None or tokens[close_index].content in OPEN_BRACKETS:
        return None

    content_indices = [i for i in range(index + 1, close_index)
                       if tokens[i].category != TokenCategory.DELIMITER]
    if not content_indices:
        return None
    if any(tokens[i].category != TokenCategory.UNKNOWN for i in content_indices):
        return None

    name = join_contents(tokens, index + 1, close_index).strip()
    if not name or name.replace(" ", "").isdecimal() or ctx.keywords.is_blacklisted_group(name):
        return None

    return Claim(entries=((ElementCategory.RELEASE_GROUP, name),),
                 indices=tuple(content_indices))
