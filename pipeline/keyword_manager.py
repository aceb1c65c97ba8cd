#!/usr/bin/env python3
"""
Keyword table built from the anime keyword dictionary.

The table is immutable once built; a single instance is shared by every
tokenizer and classifier call.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Pattern, Tuple

from .dictionary_loader import DEFAULT_DICTIONARY, DictionaryLoader
from .elements import ElementCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keyword:
    """A dictionary keyword and the flags controlling how it may be claimed."""

    category: ElementCategory
    identifiable: bool = True
    searchable: bool = True
    valid: bool = True


class KeywordManager:
    """Read-only lookup over keyword groups, file extensions and peek phrases."""

    def __init__(self, dictionary: Optional[Mapping[str, Any]] = None,
                 dictionary_name: str = DEFAULT_DICTIONARY):
        """Initialize from a dictionary mapping, or load it through DictionaryLoader.

        Args:
            dictionary: Parsed dictionary contents. If None, uses DictionaryLoader.
            dictionary_name: Dictionary file to load when ``dictionary`` is None.
        """
        if dictionary is None:
            dictionary = DictionaryLoader.load_dictionary(dictionary_name) or {}
            if not dictionary:
                logger.warning("Keyword dictionary %s is empty or missing", dictionary_name)

        keywords: Dict[str, Keyword] = {}
        for group in dictionary.get("keywords", []):
            keyword = Keyword(
                category=ElementCategory(group["category"]),
                identifiable=group.get("identifiable", True),
                searchable=group.get("searchable", True),
                valid=group.get("valid", True),
            )
            for word in group.get("words", []):
                keywords.setdefault(self.normalize(word), keyword)

        self._keywords: Mapping[str, Keyword] = MappingProxyType(keywords)
        self.file_extensions: FrozenSet[str] = frozenset(
            ext.upper() for ext in dictionary.get("file_extensions", [])
        )
        self.ordinal_seasons: Mapping[str, str] = MappingProxyType({
            word.lower(): number for word, number in dictionary.get("ordinal_seasons", {}).items()
        })
        self.release_group_blacklist: FrozenSet[str] = frozenset(
            name.upper() for name in dictionary.get("release_group_blacklist", [])
        )
        self.trimming_strings: Tuple[str, ...] = tuple(dictionary.get("trimming_strings", []))
        self.peek_keywords: Tuple[str, ...] = tuple(
            sorted(dictionary.get("peek_keywords", []), key=len, reverse=True)
        )
        self._peek_pattern = self._compile_peek_pattern(self.peek_keywords)

        logger.debug("Loaded %d keywords, %d file extensions", len(self._keywords), len(self.file_extensions))

    @staticmethod
    def normalize(word: str) -> str:
        return word.upper()

    @staticmethod
    def _compile_peek_pattern(phrases: Iterable[str]) -> Optional[Pattern[str]]:
        alternatives = [re.escape(phrase) for phrase in phrases]
        if not alternatives:
            return None
        return re.compile(
            r"(?<![0-9A-Za-z])(?:" + "|".join(alternatives) + r")(?![0-9A-Za-z])",
            re.IGNORECASE,
        )

    def find(self, word: str, category: Optional[ElementCategory] = None) -> Optional[Keyword]:
        """
        Look up a keyword.

        Args:
            word: Token text, compared case-insensitively
            category: When given, only a keyword of this category is returned

        Returns:
            The Keyword entry, or None
        """
        keyword = self._keywords.get(self.normalize(word))
        if keyword is None:
            return None
        if category is not None and keyword.category != category:
            return None
        return keyword

    def is_file_extension(self, extension: str) -> bool:
        return extension.upper() in self.file_extensions

    def ordinal_to_number(self, word: str) -> Optional[str]:
        return self.ordinal_seasons.get(word.lower())

    def is_blacklisted_group(self, name: str) -> bool:
        return name.strip().upper() in self.release_group_blacklist

    def find_peek_phrases(self, text: str) -> List[Tuple[int, int]]:
        """Return ``(start, end)`` spans of pre-identified phrases in ``text``."""
        if self._peek_pattern is None or not text:
            return []
        return [match.span() for match in self._peek_pattern.finditer(text)]

    def __len__(self) -> int:
        return len(self._keywords)


_default_manager: Optional[KeywordManager] = None


def get_keyword_manager() -> KeywordManager:
    """Shared KeywordManager built from the packaged dictionary."""
    global _default_manager
    if _default_manager is None:
        _default_manager = KeywordManager()
    return _default_manager
