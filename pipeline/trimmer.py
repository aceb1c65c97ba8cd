#!/usr/bin/env python3
"""
Trimmer module for cleaning assembled element text.

Removes delimiter and dash noise from both ends of a string, collapses
repeated spaces and drops bracket characters that lost their partner
when an element was cut out of the filename.
"""

import re
from typing import Optional, Sequence

from .dictionary_loader import DictionaryLoader
from .tokenizer import pair_brackets, CLOSE_BRACKETS, OPEN_BRACKETS

_REPEATED_SPACES = re.compile(r" {2,}")


class Trimmer:
    """Trims unwanted patterns from the beginning and end of strings."""

    def __init__(self, trimming_strings: Optional[Sequence[str]] = None):
        """Initialize trimmer with trimming patterns.

        Args:
            trimming_strings: Patterns to strip. If None, uses DictionaryLoader.
        """
        if trimming_strings is None:
            trimming_strings = DictionaryLoader.get_section('trimming_strings') or [" ", "-"]
        self.trimming_strings = list(trimming_strings)

    def trim(self, text: str) -> str:
        """
        Trim unwanted patterns from the beginning and end of a string.

        Iteratively removes patterns from trimming_strings until no more
        changes occur. This handles nested patterns like "- - -" -> "".

        Args:
            text: String to trim

        Returns:
            Trimmed string

        Example:
            >>> Trimmer([" ", "-"]).trim(" - Kimetsu no Yaiba - ")
            'Kimetsu no Yaiba'
        """
        if not text:
            return text

        trimmed = text
        changed = True
        while changed:
            changed = False

            for trim_str in self.trimming_strings:
                if trim_str and trimmed.startswith(trim_str):
                    trimmed = trimmed[len(trim_str):]
                    changed = True

            for trim_str in self.trimming_strings:
                if trim_str and trimmed.endswith(trim_str):
                    trimmed = trimmed[:-len(trim_str)]
                    changed = True

        return trimmed

    @staticmethod
    def balance_brackets(text: str) -> str:
        """
        Remove bracket characters that have no partner.

        Example:
            >>> Trimmer.balance_brackets("Title (TV")
            'Title TV'
        """
        pairs = pair_brackets(text)
        paired = set(pairs) | set(pairs.values())
        return "".join(
            char for index, char in enumerate(text)
            if index in paired or (char not in OPEN_BRACKETS and char not in CLOSE_BRACKETS)
        )

    def clean(self, text: str) -> str:
        """Collapse repeated spaces, balance brackets and trim."""
        if not text:
            return text
        text = _REPEATED_SPACES.sub(" ", text)
        text = self.trim(text)
        text = self.balance_brackets(text)
        return self.trim(_REPEATED_SPACES.sub(" ", text))
