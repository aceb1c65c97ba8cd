#!/usr/bin/env python3
"""
Title assembler for building free-text elements from unclaimed tokens.

The anime title is what remains between the start of the name and the
first claimed token. The episode title is the next free-standing run after
that, and a release group is recovered from an unclaimed bracket group
when the classifier did not find one.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from .elements import ElementCategory, Elements
from .keyword_manager import KeywordManager, get_keyword_manager
from .number_matchers import is_mostly_latin
from .options import ParserOptions
from .token_search import find_first, find_prev, is_dash
from .tokenizer import CLOSE_BRACKETS, Token, TokenCategory
from .trimmer import Trimmer

logger = logging.getLogger(__name__)

_KEPT_DELIMITERS = (",", "&")


def _is_unknown(token: Token) -> bool:
    return token.category == TokenCategory.UNKNOWN


def _is_bracket(token: Token) -> bool:
    return token.category == TokenCategory.BRACKET


def _is_identifier(token: Token) -> bool:
    return token.category == TokenCategory.IDENTIFIER


class TitleAssembler:
    """Assembler for anime title, episode title and fallback release group."""

    def __init__(self, keyword_manager: Optional[KeywordManager] = None,
                 options: Optional[ParserOptions] = None,
                 trimmer: Optional[Trimmer] = None):
        self.keywords = keyword_manager or get_keyword_manager()
        self.options = options or ParserOptions()
        self.trimmer = trimmer or Trimmer(self.keywords.trimming_strings or None)

    def assemble(self, tokens: List[Token], elements: Elements) -> Elements:
        """
        Fill title elements from the tokens the classifier left unclaimed.

        Args:
            tokens: Classified tokens; assembled tokens are marked as
                identifiers in place
            elements: Elements found so far; updated in place

        Returns:
            The same Elements instance
        """
        self._search_anime_title(tokens, elements)
        if self.options.parse_release_group and ElementCategory.RELEASE_GROUP not in elements:
            self._search_release_group(tokens, elements)
        if self.options.parse_episode_title and ElementCategory.EPISODE_NUMBER in elements:
            self._search_episode_title(tokens, elements)
        self._validate(elements)

        return elements

    def _search_anime_title(self, tokens: List[Token], elements: Elements) -> None:
        enclosed_title = False
        start = find_first(tokens, lambda t: _is_unknown(t) and not t.enclosed)

        if start is None:
            # [Group][Title][01]: an unclaimed first group is presumed to be the release group
            enclosed_title = True
            skip_first = ElementCategory.RELEASE_GROUP not in elements
            cursor = 0
            while True:
                start = find_first(tokens, _is_unknown, cursor)
                if start is None:
                    return
                if is_mostly_latin(tokens[start].content) and not skip_first:
                    break
                skip_first = False
                cursor = find_first(tokens, _is_bracket, start)
                if cursor is None:
                    return

        if enclosed_title:
            end = find_first(tokens, lambda t: _is_identifier(t) or _is_bracket(t), start)
        else:
            end = find_first(tokens, _is_identifier, start)
            end = self._close_open_bracket(tokens, start, end)
            end = self._drop_trailing_groups(tokens, end)

        self._build(tokens, elements, ElementCategory.ANIME_TITLE, start, end, keep_delimiters=False)

    @staticmethod
    def _close_open_bracket(tokens: List[Token], start: int, end: Optional[int]) -> Optional[int]:
        """Stop the title before a bracket group the claimed token sits inside of."""
        last_bracket = end
        bracket_open = False
        for offset, token in enumerate(tokens[start:end]):
            if _is_bracket(token):
                last_bracket = start + offset
                bracket_open = not bracket_open
        return last_bracket if bracket_open else end

    @staticmethod
    def _drop_trailing_groups(tokens: List[Token], end: Optional[int]) -> Optional[int]:
        """Cut square or curly bracket groups off the end of the title; keep "(TV)"."""
        stop = len(tokens) if end is None else end
        current = find_prev(tokens, stop)
        while (current is not None and _is_bracket(tokens[current])
               and tokens[current].content in CLOSE_BRACKETS
               and tokens[current].content not in (")", "）")):
            opener = find_prev(tokens, current, skip=set(TokenCategory) - {TokenCategory.BRACKET})
            if opener is None:
                break
            end = opener
            current = find_prev(tokens, opener)
        return end

    def _search_release_group(self, tokens: List[Token], elements: Elements) -> None:
        cursor = 0
        while True:
            start = find_first(tokens, lambda t: _is_unknown(t) and t.enclosed, cursor)
            if start is None:
                return
            end = find_first(tokens, lambda t: _is_bracket(t) or _is_identifier(t), start)
            if end is None:
                return
            cursor = end
            if not _is_bracket(tokens[end]):
                continue
            prev = find_prev(tokens, start)
            if prev is None or not _is_bracket(tokens[prev]):
                continue

            self._build(tokens, elements, ElementCategory.RELEASE_GROUP, start, end, keep_delimiters=True)
            return

    def _search_episode_title(self, tokens: List[Token], elements: Elements) -> None:
        cursor = 0
        while True:
            start = find_first(tokens, lambda t: _is_unknown(t) and not t.enclosed, cursor)
            if start is None:
                return
            end = find_first(tokens, lambda t: _is_bracket(t) or _is_identifier(t), start)
            stop = len(tokens) if end is None else end
            if stop - start <= 2 and is_dash(tokens[start]):
                cursor = stop
                continue

            self._build(tokens, elements, ElementCategory.EPISODE_TITLE, start, end, keep_delimiters=False)
            return

    def _build(self, tokens: List[Token], elements: Elements, category: ElementCategory,
               start: int, end: Optional[int], keep_delimiters: bool) -> None:
        stop = len(tokens) if end is None else end
        parts: List[str] = []

        for index in range(start, stop):
            token = tokens[index]
            if token.category == TokenCategory.UNKNOWN:
                parts.append(token.content)
                tokens[index] = replace(token, category=TokenCategory.IDENTIFIER)
            elif token.category == TokenCategory.BRACKET:
                parts.append(token.content)
            elif token.category == TokenCategory.DELIMITER:
                if keep_delimiters or token.content in _KEPT_DELIMITERS:
                    parts.append(token.content)
                else:
                    parts.append(" ")

        value = "".join(parts)
        if not keep_delimiters:
            value = self.trimmer.clean(value)
        else:
            value = value.strip()

        if value:
            logger.debug("Assembled %s: %r", category.value, value)
            elements.add(category, value)

    def _validate(self, elements: Elements) -> None:
        anime_type = elements.get(ElementCategory.ANIME_TYPE)
        episode_title = elements.get(ElementCategory.EPISODE_TITLE)
        if not anime_type or not episode_title or anime_type not in episode_title:
            return

        if len(episode_title) == len(anime_type):
            elements.remove(ElementCategory.EPISODE_TITLE)
        elif self.keywords.find(anime_type, ElementCategory.ANIME_TYPE):
            elements.remove(ElementCategory.ANIME_TYPE)
