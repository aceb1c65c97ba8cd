#!/usr/bin/env python3
"""
Tokenizer module for splitting release filenames into lossless tokens.

Brackets are paired first; each bracketed or free-standing region is then
scanned for pre-identified phrases and split on delimiter characters.
Every bracket and delimiter character is a token of its own, so joining
the content of all tokens gives back the input string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from .keyword_manager import KeywordManager, get_keyword_manager

DEFAULT_DELIMITERS = " _.&+,|"

BRACKET_PAIRS: Dict[str, str] = {
    "(": ")",
    "[": "]",
    "{": "}",
    "「": "」",
    "『": "』",
    "【": "】",
    "（": "）",
}
OPEN_BRACKETS = frozenset(BRACKET_PAIRS)
CLOSE_BRACKETS = frozenset(BRACKET_PAIRS.values())


class TokenCategory(str, Enum):
    UNKNOWN = "unknown"
    BRACKET = "bracket"
    DELIMITER = "delimiter"
    IDENTIFIER = "identifier"
    INVALID = "invalid"


@dataclass(frozen=True)
class Token:
    """Represents a single token extracted from a filename."""

    content: str
    category: TokenCategory
    enclosed: bool
    position: int  # Position in the tokenized string

    def to_dict(self) -> Dict[str, object]:
        return {
            "category": self.category.value,
            "content": self.content,
            "enclosed": self.enclosed,
        }


class _Draft:
    """Mutable token used while delimiter validation merges neighbours."""

    __slots__ = ("content", "category", "enclosed", "position")

    def __init__(self, content: str, category: TokenCategory, enclosed: bool, position: int):
        self.content = content
        self.category = category
        self.enclosed = enclosed
        self.position = position

    def freeze(self) -> Token:
        return Token(self.content, self.category, self.enclosed, self.position)


def pair_brackets(text: str) -> Dict[int, int]:
    """
    Pair opening and closing bracket characters.

    A closing bracket pairs with the nearest matching opener on the stack;
    openers above that one are left unmatched.

    Args:
        text: String to scan

    Returns:
        Mapping of opener index to closer index for every matched pair
    """
    stack: List[Tuple[str, int]] = []
    pairs: Dict[int, int] = {}

    for index, char in enumerate(text):
        if char in OPEN_BRACKETS:
            stack.append((char, index))
        elif char in CLOSE_BRACKETS:
            for depth in range(len(stack) - 1, -1, -1):
                opener, open_index = stack[depth]
                if BRACKET_PAIRS[opener] == char:
                    pairs[open_index] = index
                    del stack[depth:]
                    break

    return pairs


class Tokenizer:
    """Tokenizer for splitting filenames into bracket, delimiter and word tokens."""

    def __init__(self, keyword_manager: Optional[KeywordManager] = None,
                 delimiters: str = DEFAULT_DELIMITERS):
        self.keyword_manager = keyword_manager or get_keyword_manager()
        self.delimiters = delimiters

    def tokenize(self, text: object) -> List[Token]:
        """
        Tokenize a filename.

        Args:
            text: The filename to tokenize, usually without its extension

        Returns:
            Ordered token list; empty for non-string or empty input
        """
        if not isinstance(text, str) or not text:
            return []

        drafts = self._tokenize_by_brackets(text)
        self._validate_delimiters(drafts)

        return [draft.freeze() for draft in drafts if draft.category != TokenCategory.INVALID]

    def _tokenize_by_brackets(self, text: str) -> List[_Draft]:
        pairs = pair_brackets(text)
        closers: Set[int] = set(pairs.values())

        drafts: List[_Draft] = []
        depth = 0
        run_start = 0

        for index, char in enumerate(text):
            if index in pairs or index in closers:
                self._tokenize_run(text, run_start, index, depth > 0, drafts)
                if index in closers:
                    depth -= 1
                drafts.append(_Draft(char, TokenCategory.BRACKET, depth > 0, index))
                if index in pairs:
                    depth += 1
                run_start = index + 1
            elif char in OPEN_BRACKETS or char in CLOSE_BRACKETS:
                self._tokenize_run(text, run_start, index, depth > 0, drafts)
                drafts.append(_Draft(char, TokenCategory.UNKNOWN, depth > 0, index))
                run_start = index + 1

        self._tokenize_run(text, run_start, len(text), depth > 0, drafts)
        return drafts

    def _tokenize_run(self, text: str, start: int, end: int, enclosed: bool,
                      drafts: List[_Draft]) -> None:
        if start >= end:
            return

        run = text[start:end]
        cursor = 0
        for phrase_start, phrase_end in self.keyword_manager.find_peek_phrases(run):
            self._split_by_delimiters(run[cursor:phrase_start], start + cursor, enclosed, drafts)
            drafts.append(_Draft(run[phrase_start:phrase_end], TokenCategory.UNKNOWN,
                                 enclosed, start + phrase_start))
            cursor = phrase_end
        self._split_by_delimiters(run[cursor:], start + cursor, enclosed, drafts)

    def _split_by_delimiters(self, text: str, offset: int, enclosed: bool,
                             drafts: List[_Draft]) -> None:
        word_start = 0
        for index, char in enumerate(text):
            if char in self.delimiters:
                if index > word_start:
                    drafts.append(_Draft(text[word_start:index], TokenCategory.UNKNOWN,
                                         enclosed, offset + word_start))
                drafts.append(_Draft(char, TokenCategory.DELIMITER, enclosed, offset + index))
                word_start = index + 1
        if word_start < len(text):
            drafts.append(_Draft(text[word_start:], TokenCategory.UNKNOWN,
                                 enclosed, offset + word_start))

    def _validate_delimiters(self, drafts: List[_Draft]) -> None:
        """Re-join tokens that delimiter splitting should not have separated."""

        def neighbour(start: int, step: int) -> Optional[int]:
            index = start + step
            while 0 <= index < len(drafts):
                if drafts[index].category != TokenCategory.INVALID:
                    return index
                index += step
            return None

        def category_of(index: Optional[int]) -> Optional[TokenCategory]:
            return None if index is None else drafts[index].category

        def is_single_character(index: Optional[int]) -> bool:
            return (category_of(index) == TokenCategory.UNKNOWN
                    and len(drafts[index].content) == 1
                    and drafts[index].content != "-")

        def append_to(index: int, destination: int) -> None:
            drafts[destination].content += drafts[index].content
            drafts[index].category = TokenCategory.INVALID

        for index, draft in enumerate(drafts):
            if draft.category != TokenCategory.DELIMITER:
                continue

            delimiter = draft.content
            prev_index = neighbour(index, -1)
            next_index = neighbour(index, 1)

            # Single characters around a delimiter: A.I.R, S.H.E
            if delimiter not in (" ", "_"):
                if is_single_character(prev_index):
                    append_to(index, prev_index)
                    while category_of(next_index) == TokenCategory.UNKNOWN:
                        append_to(next_index, prev_index)
                        next_index = neighbour(next_index, 1)
                        if (category_of(next_index) == TokenCategory.DELIMITER
                                and drafts[next_index].content == delimiter):
                            append_to(next_index, prev_index)
                            next_index = neighbour(next_index, 1)
                    continue
                if prev_index is not None and is_single_character(next_index):
                    append_to(index, prev_index)
                    append_to(next_index, prev_index)
                    continue

            # Adjacent delimiters: "Dr. Stone" keeps the period on "Dr."
            if (category_of(prev_index) == TokenCategory.UNKNOWN
                    and category_of(next_index) == TokenCategory.DELIMITER):
                next_delimiter = drafts[next_index].content
                if delimiter != next_delimiter and delimiter != ",":
                    if next_delimiter in (" ", "_"):
                        append_to(index, prev_index)
                        continue
            elif (category_of(prev_index) == TokenCategory.DELIMITER
                    and category_of(next_index) == TokenCategory.DELIMITER):
                if (drafts[prev_index].content == drafts[next_index].content
                        and drafts[prev_index].content != delimiter):
                    draft.category = TokenCategory.UNKNOWN  # "&" in "_&_"
                    continue

            # Numbers joined by & or +: 01+02
            if delimiter in ("&", "+"):
                if (category_of(prev_index) == TokenCategory.UNKNOWN
                        and category_of(next_index) == TokenCategory.UNKNOWN
                        and drafts[prev_index].content.isdecimal()
                        and drafts[next_index].content.isdecimal()):
                    append_to(index, prev_index)
                    append_to(next_index, prev_index)

