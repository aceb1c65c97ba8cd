#!/usr/bin/env python3
"""
Neighbour lookups over a token list.

Helpers take the list and an index and return the index of the matching
token, or None when the walk runs off either end.
"""

from __future__ import annotations

from typing import Callable, Collection, Optional, Sequence

from .tokenizer import Token, TokenCategory

DASHES = "-‐‑‒–—―"

SKIP_DELIMITERS = frozenset({TokenCategory.DELIMITER, TokenCategory.INVALID})


def find_next(tokens: Sequence[Token], index: int,
              skip: Collection[TokenCategory] = SKIP_DELIMITERS) -> Optional[int]:
    """Index of the next token after ``index`` whose category is not in ``skip``."""
    for position in range(index + 1, len(tokens)):
        if tokens[position].category not in skip:
            return position
    return None


def find_prev(tokens: Sequence[Token], index: int,
              skip: Collection[TokenCategory] = SKIP_DELIMITERS) -> Optional[int]:
    """Index of the previous token before ``index`` whose category is not in ``skip``."""
    for position in range(index - 1, -1, -1):
        if tokens[position].category not in skip:
            return position
    return None


def find_first(tokens: Sequence[Token], predicate: Callable[[Token], bool],
               start: int = 0, stop: Optional[int] = None) -> Optional[int]:
    stop = len(tokens) if stop is None else stop
    for position in range(start, stop):
        if predicate(tokens[position]):
            return position
    return None


def is_bracket(tokens: Sequence[Token], index: Optional[int]) -> bool:
    return index is not None and tokens[index].category == TokenCategory.BRACKET


def is_dash(token: Token) -> bool:
    return len(token.content) == 1 and token.content in DASHES


def is_isolated(tokens: Sequence[Token], index: int) -> bool:
    """
    Check whether a token sits alone between a bracket pair.

    Delimiters around the token are ignored, so ``[ 12 ]`` counts as
    isolated just like ``[12]``.
    """
    return (is_bracket(tokens, find_prev(tokens, index))
            and is_bracket(tokens, find_next(tokens, index)))


def join_contents(tokens: Sequence[Token], start: int, stop: int) -> str:
    return "".join(token.content for token in tokens[start:stop])
