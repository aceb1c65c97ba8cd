#!/usr/bin/env python3
"""
Shared types for classifier matchers.

A matcher looks at the current classification state and, when it
recognises something at a token index, returns a Claim describing the
elements found and the tokens they consume. Matchers never mutate state;
the classifier applies claims.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from .elements import ElementCategory, Elements
from .keyword_manager import KeywordManager
from .options import ParserOptions
from .tokenizer import Token

ClaimEntry = Tuple[ElementCategory, str]


@dataclass(frozen=True)
class Claim:
    """
    Result of a successful match.

    Attributes:
        entries: Element values to record, in order.
        indices: Token indices consumed by the match.
        identify: Whether consumed tokens become identifiers. Non-identifiable
            keywords record a value but leave their token to the title.
        batch: The match is an episode range; no token is consumed and the
            remaining episode strategies are skipped.
    """

    entries: Tuple[ClaimEntry, ...] = ()
    indices: Tuple[int, ...] = ()
    identify: bool = True
    batch: bool = False

    def at(self, *indices: int) -> "Claim":
        """Copy of this claim consuming the given token indices."""
        return replace(self, indices=tuple(indices))

    def with_entries(self, *entries: ClaimEntry) -> "Claim":
        """Copy of this claim with ``entries`` recorded ahead of its own."""
        return replace(self, entries=tuple(entries) + self.entries)


@dataclass
class ClassifierContext:
    """
    Per-call classification state: a working token list and the elements found so far.

    ``batch`` is set once an episode range has been seen.
    """

    tokens: List[Token]
    elements: Elements
    keywords: KeywordManager
    options: ParserOptions = field(default_factory=ParserOptions)
    batch: bool = False


Matcher = Callable[[ClassifierContext, int], Optional[Claim]]


@dataclass(frozen=True)
class MatcherPass:
    """One sweep of a matcher over the token list."""

    name: str
    matcher: Matcher
    reverse: bool = False
    first_only: bool = False
