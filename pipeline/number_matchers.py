#!/usr/bin/env python3
"""
Numeric disambiguation for the classifier.

Word parsers recognise episode and volume notations inside a single
token ("01v2", "S01E05", "#03", "07.5", "OVA2"). The token matchers use
them together with the surrounding tokens: isolated years and
resolutions, then the episode strategies tried in priority order.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from .claims import Claim, ClassifierContext, MatcherPass
from .elements import ElementCategory
from .keyword_manager import KeywordManager
from .token_search import find_next, find_prev, is_dash, is_isolated
from .tokenizer import TokenCategory

ANIME_YEAR_MIN = 1900
ANIME_YEAR_MAX = 2050
EPISODE_NUMBER_MAX = ANIME_YEAR_MIN - 1
VOLUME_NUMBER_MAX = 20
ISOLATED_RESOLUTIONS = frozenset({480, 720, 1080, 2160})

EPISODE_SINGLE = re.compile(r"(\d{1,3})[vV](\d)")
EPISODE_MULTI = re.compile(r"(\d{1,3})(?:[vV](\d))?([-~&+])(\d{1,3})(?:[vV](\d))?")
SEASON_EPISODE = re.compile(
    r"S?(\d{1,2})(?:-S?(\d{1,2}))?(?:x|[ ._x-]?E)(\d{1,3})(?:-E?(\d{1,3}))?",
    re.IGNORECASE,
)
EPISODE_FRACTION = re.compile(r"\d+\.5")
EPISODE_HASH = re.compile(r"#(\d{1,3})(?:([-~&+])(\d{1,3}))?(?:[vV](\d))?")
EPISODE_JAPANESE = re.compile(r"(\d{1,3})話")
VOLUME_SINGLE = re.compile(r"(\d{1,2})[vV](\d)")
VOLUME_MULTI = re.compile(r"(\d{1,2})[-~&+](\d{1,2})(?:[vV](\d))?")
RESOLUTION = re.compile(r"\d{3,4}[pP]|\d{3,4}[xX×]\d{3,4}")

# Separators that join two episodes of one release rather than span a batch
MULTI_EPISODE_SEPARATORS = "&+"

EPISODE = ElementCategory.EPISODE_NUMBER
VOLUME = ElementCategory.VOLUME_NUMBER
VERSION = ElementCategory.RELEASE_VERSION


def to_int(value: str) -> int:
    """Leading-digit integer conversion: "07.5" is 7, "4a" is 4, "" is 0."""
    digits = re.match(r"\d*", value).group(0)
    return int(digits) if digits else 0


def is_resolution(word: str) -> bool:
    return RESOLUTION.fullmatch(word) is not None


def is_crc32(word: str) -> bool:
    return len(word) == 8 and all(char in "0123456789abcdefABCDEF" for char in word)


def is_mostly_latin(text: str) -> bool:
    if not text:
        return False
    latin = sum(1 for char in text if char <= "\u024f")
    return latin / len(text) >= 0.5


def _episode(number: str, validate: bool = True) -> Optional[Claim]:
    if validate and to_int(number) > EPISODE_NUMBER_MAX:
        return None
    return Claim(entries=((EPISODE, number),))


def _range(lower: str, upper: str, separator: str, *versions: Optional[str]) -> Optional[Claim]:
    if to_int(lower) >= to_int(upper) or to_int(lower) > EPISODE_NUMBER_MAX:
        return None
    if separator not in MULTI_EPISODE_SEPARATORS:
        return Claim(batch=True, identify=False)
    entries = [(EPISODE, lower), (EPISODE, upper)]
    entries.extend((VERSION, version) for version in versions if version)
    return Claim(entries=tuple(entries))


def parse_episode_word(word: str, keywords: KeywordManager) -> Optional[Claim]:
    """
    Recognise an episode notation packed into one word.

    Args:
        word: Token content
        keywords: Used to recognise anime type prefixes such as "OVA"

    Returns:
        A Claim without token indices, or None
    """
    if not word or word.isdecimal():
        return None
    word = word.strip(" -")
    if not word:
        return None

    front = word[0].isdecimal()
    back = word[-1].isdecimal()

    if front and back:
        match = EPISODE_SINGLE.fullmatch(word)
        if match:
            return Claim(entries=((EPISODE, match.group(1)), (VERSION, match.group(2))))

        match = EPISODE_MULTI.fullmatch(word)
        if match:
            claim = _range(match.group(1), match.group(4), match.group(3), match.group(2), match.group(5))
            if claim:
                return claim

    if back:
        match = SEASON_EPISODE.fullmatch(word)
        if match:
            season = ((ElementCategory.ANIME_SEASON, match.group(1)),)
            if match.group(4) and to_int(match.group(3)) < to_int(match.group(4)):
                return Claim(entries=season, batch=True, identify=False)
            return Claim(entries=season + ((EPISODE, match.group(3)),))

    if not front:
        number_begin = next((i for i, char in enumerate(word) if char.isdecimal()), -1)
        if number_begin > 0:
            prefix, number = word[:number_begin], word[number_begin:]
            if keywords.find(prefix, ElementCategory.ANIME_TYPE):
                inner = parse_episode_word(number, keywords)
                if inner is None and number.isdecimal():
                    inner = _episode(number)
                if inner is not None:
                    return inner.with_entries((ElementCategory.ANIME_TYPE, prefix))

    if front and back and EPISODE_FRACTION.fullmatch(word):
        return _episode(word)

    if front and not back:
        number_end = len(word.rstrip("abcABC"))
        suffix = word[number_end:]
        if len(suffix) == 1 and word[:number_end].isdecimal():
            return _episode(word)

    if back:
        match = EPISODE_HASH.fullmatch(word)
        if match:
            if match.group(3):
                return _range(match.group(1), match.group(3), match.group(2), match.group(4))
            claim = _episode(match.group(1))
            if claim and match.group(4):
                claim = Claim(entries=claim.entries + ((VERSION, match.group(4)),))
            return claim

    if front:
        match = EPISODE_JAPANESE.fullmatch(word)
        if match:
            return _episode(match.group(1), validate=False)

    return None


def parse_volume_word(word: str) -> Optional[Claim]:
    """Recognise "01v2" and "01-02" style volume numbers."""
    if not word or word.isdecimal():
        return None
    word = word.strip(" -")
    if not word or not (word[0].isdecimal() and word[-1].isdecimal()):
        return None

    match = VOLUME_SINGLE.fullmatch(word)
    if match:
        return Claim(entries=((VOLUME, match.group(1)), (VERSION, match.group(2))))

    match = VOLUME_MULTI.fullmatch(word)
    if match:
        lower, upper, version = match.groups()
        if to_int(lower) < to_int(upper) and to_int(lower) <= VOLUME_NUMBER_MAX:
            entries: Tuple = ((VOLUME, lower), (VOLUME, upper))
            if version:
                entries += ((VERSION, version),)
            return Claim(entries=entries)
    return None


def match_prefixed_number(ctx: ClassifierContext, index: int,
                          category: ElementCategory) -> Optional[Claim]:
    """Claim a number following an episode or volume prefix token ("EP 01", "Vol 2")."""
    next_index = find_next(ctx.tokens, index)
    if next_index is None or ctx.tokens[next_index].category != TokenCategory.UNKNOWN:
        return None
    content = ctx.tokens[next_index].content
    if not content[:1].isdecimal():
        return None

    if category == EPISODE:
        claim = parse_episode_word(content, ctx.keywords) or _episode(content, validate=False)
    else:
        claim = parse_volume_word(content) or Claim(entries=((VOLUME, content),))

    if claim.batch:
        return claim
    return claim.at(index, next_index)


def _is_number_token(ctx: ClassifierContext, index: int) -> bool:
    token = ctx.tokens[index]
    return token.category == TokenCategory.UNKNOWN and token.content.isdecimal()


def match_isolated_number(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """Bracketed years and bare resolutions: "(2019)", "[1080]"."""
    if not _is_number_token(ctx, index) or not is_isolated(ctx.tokens, index):
        return None
    content = ctx.tokens[index].content
    number = int(content)

    if ANIME_YEAR_MIN <= number <= ANIME_YEAR_MAX and ElementCategory.ANIME_YEAR not in ctx.elements:
        return Claim(entries=((ElementCategory.ANIME_YEAR, content),), indices=(index,))
    if number in ISOLATED_RESOLUTIONS and ElementCategory.VIDEO_RESOLUTION not in ctx.elements:
        return Claim(entries=((ElementCategory.VIDEO_RESOLUTION, content),), indices=(index,))
    return None


def _precedes_number(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """ "01 of 24" claims 01; "8 & 10" claims both numbers."""
    separator = find_next(ctx.tokens, index)
    if separator is None or ctx.tokens[separator].content not in ("&", "of"):
        return None
    other = find_next(ctx.tokens, separator)
    if other is None or not ctx.tokens[other].content.isdecimal():
        return None

    first = ctx.tokens[index].content
    if ctx.tokens[separator].content == "&":
        entries = ((EPISODE, first), (EPISODE, ctx.tokens[other].content))
    else:
        entries = ((EPISODE, first),)
    return Claim(entries=entries, indices=(index, separator, other))


def _number_after_prefix(ctx: ClassifierContext, index: int,
                         category: ElementCategory) -> Optional[Claim]:
    content = ctx.tokens[index].content
    number_begin = next((i for i, char in enumerate(content) if char.isdecimal()), -1)
    if number_begin <= 0:
        return None
    if not ctx.keywords.find(content[:number_begin], category):
        return None

    number = content[number_begin:]
    if category == ElementCategory.EPISODE_PREFIX:
        claim = parse_episode_word(number, ctx.keywords) or _episode(number, validate=False)
    else:
        claim = parse_volume_word(number) or Claim(entries=((VOLUME, number),))
    return claim if claim.batch else claim.at(index)


def match_episode_pattern(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    token = ctx.tokens[index]
    if token.category != TokenCategory.UNKNOWN or not any(char.isdecimal() for char in token.content):
        return None

    if token.content[0].isdecimal():
        claim = _precedes_number(ctx, index)
        if claim:
            return claim
    else:
        claim = (_number_after_prefix(ctx, index, ElementCategory.EPISODE_PREFIX)
                 or _number_after_prefix(ctx, index, ElementCategory.VOLUME_PREFIX))
        if claim:
            return claim

    claim = parse_episode_word(token.content, ctx.keywords)
    if claim is None or claim.batch:
        return claim
    return claim.at(index)


def match_separated_number(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """A number right after a dash: "Title - 08"."""
    if not _is_number_token(ctx, index):
        return None
    prev_index = find_prev(ctx.tokens, index)
    if prev_index is None:
        return None
    prev = ctx.tokens[prev_index]
    if prev.category != TokenCategory.UNKNOWN or not is_dash(prev):
        return None
    claim = _episode(ctx.tokens[index].content)
    return claim.at(index, prev_index) if claim else None


def match_isolated_episode(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """An enclosed number alone in its brackets: "[12]"."""
    if not _is_number_token(ctx, index):
        return None
    if not ctx.tokens[index].enclosed or not is_isolated(ctx.tokens, index):
        return None
    claim = _episode(ctx.tokens[index].content)
    return claim.at(index) if claim else None


def match_last_number(ctx: ClassifierContext, index: int) -> Optional[Claim]:
    """Last resort: the first bare number that follows some title text."""
    if index == 0 or not _is_number_token(ctx, index):
        return None
    token = ctx.tokens[index]
    if token.enclosed:
        return None
    if all(t.enclosed or t.category == TokenCategory.DELIMITER for t in ctx.tokens[:index]):
        return None

    prev_index = find_prev(ctx.tokens, index)
    if prev_index is not None:
        prev = ctx.tokens[prev_index]
        if prev.category == TokenCategory.UNKNOWN and prev.content in ("Movie", "Part"):
            return None

    claim = _episode(token.content)
    return claim.at(index) if claim else None


EPISODE_STRATEGIES = (
    MatcherPass("episode_pattern", match_episode_pattern, first_only=True),
    MatcherPass("separated_number", match_separated_number, first_only=True),
    MatcherPass("isolated_episode", match_isolated_episode, first_only=True),
    MatcherPass("last_number", match_last_number, first_only=True),
)
