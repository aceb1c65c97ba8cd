#!/usr/bin/env python3
"""
Element categories, the per-parse element container and the output record.

The classifier and the title assembler both write into an ``Elements``
instance; ``ParsedFilename`` is the flat record handed to callers.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class ElementCategory(str, Enum):
    """Categories an element value can be filed under."""

    ANIME_SEASON = "anime_season"
    ANIME_SEASON_PREFIX = "anime_season_prefix"
    ANIME_TITLE = "anime_title"
    ANIME_TYPE = "anime_type"
    ANIME_YEAR = "anime_year"
    AUDIO_TERM = "audio_term"
    DEVICE_COMPATIBILITY = "device_compatibility"
    EPISODE_NUMBER = "episode_number"
    EPISODE_PREFIX = "episode_prefix"
    EPISODE_TITLE = "episode_title"
    FILE_CHECKSUM = "file_checksum"
    FILE_EXTENSION = "file_extension"
    FILE_NAME = "file_name"
    LANGUAGE = "language"
    OTHER = "other"
    RELEASE_GROUP = "release_group"
    RELEASE_INFORMATION = "release_information"
    RELEASE_VERSION = "release_version"
    SOURCE = "source"
    SUBTITLES = "subtitles"
    VIDEO_RESOLUTION = "video_resolution"
    VIDEO_TERM = "video_term"
    VOLUME_NUMBER = "volume_number"
    VOLUME_PREFIX = "volume_prefix"

    def is_searchable(self) -> bool:
        """Whether keyword lookups for this category are allowed during classification."""
        return self in _SEARCHABLE_CATEGORIES

    def is_singular(self) -> bool:
        """Whether at most one value of this category is meaningful."""
        return self not in _PLURAL_CATEGORIES


_SEARCHABLE_CATEGORIES = frozenset({
    ElementCategory.ANIME_SEASON_PREFIX,
    ElementCategory.ANIME_TYPE,
    ElementCategory.AUDIO_TERM,
    ElementCategory.DEVICE_COMPATIBILITY,
    ElementCategory.EPISODE_PREFIX,
    ElementCategory.FILE_CHECKSUM,
    ElementCategory.LANGUAGE,
    ElementCategory.OTHER,
    ElementCategory.RELEASE_GROUP,
    ElementCategory.RELEASE_INFORMATION,
    ElementCategory.RELEASE_VERSION,
    ElementCategory.SOURCE,
    ElementCategory.SUBTITLES,
    ElementCategory.VIDEO_RESOLUTION,
    ElementCategory.VIDEO_TERM,
    ElementCategory.VOLUME_PREFIX,
})

_PLURAL_CATEGORIES = frozenset({
    ElementCategory.ANIME_SEASON,
    ElementCategory.ANIME_TYPE,
    ElementCategory.AUDIO_TERM,
    ElementCategory.DEVICE_COMPATIBILITY,
    ElementCategory.EPISODE_NUMBER,
    ElementCategory.LANGUAGE,
    ElementCategory.OTHER,
    ElementCategory.RELEASE_INFORMATION,
    ElementCategory.SOURCE,
    ElementCategory.SUBTITLES,
    ElementCategory.VIDEO_TERM,
    ElementCategory.VOLUME_NUMBER,
})


class Elements:
    """Ordered multimap of element category to string values."""

    def __init__(self) -> None:
        self._entries: List[Tuple[ElementCategory, str]] = []

    def add(self, category: ElementCategory, value: str) -> None:
        if value:
            self._entries.append((ElementCategory(category), value))

    def get(self, category: ElementCategory, default: str = "") -> str:
        """First value stored for ``category``, or ``default``."""
        for entry_category, value in self._entries:
            if entry_category == category:
                return value
        return default

    def get_all(self, category: ElementCategory) -> List[str]:
        return [value for entry_category, value in self._entries if entry_category == category]

    def remove(self, category: ElementCategory) -> None:
        self._entries = [entry for entry in self._entries if entry[0] != category]

    def __contains__(self, category: object) -> bool:
        return any(entry_category == category for entry_category, _ in self._entries)

    def __iter__(self) -> Iterator[Tuple[ElementCategory, str]]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {}
        for category, value in self._entries:
            result.setdefault(category.value, []).append(value)
        return result

    def __repr__(self) -> str:
        return f"Elements({self.to_dict()!r})"


@dataclass
class ParsedFilename:
    """Flat parse record; every text field defaults to an empty string."""

    filename: str = ""
    anime_title: str = ""
    episode_number: str = ""
    episode_title: str = ""
    release_group: str = ""
    release_version: str = ""
    release_information: str = ""
    video_resolution: str = ""
    video_term: str = ""
    audio_term: str = ""
    source: str = ""
    file_extension: str = ""
    file_checksum: str = ""
    anime_year: str = ""
    anime_season: str = ""
    anime_type: str = ""
    language: str = ""
    subtitles: str = ""
    volume_number: str = ""
    tokens: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_elements(
        cls,
        filename: str,
        elements: Elements,
        tokens: Optional[List[Any]] = None,
    ) -> "ParsedFilename":
        """
        Build the record from classified elements.

        Args:
            filename: The raw filename that was parsed
            elements: Elements produced by the classifier and assembler
            tokens: Optional token list, serialised as category/content/enclosed

        Returns:
            ParsedFilename with the first value of each category
        """
        values = {
            name: elements.get(ElementCategory(name))
            for name in _RECORD_FIELDS
        }
        return cls(
            filename=filename,
            tokens=[token.to_dict() for token in (tokens or [])],
            **values,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        """Convert result to JSON format."""
        return json.dumps(self.to_dict(), ensure_ascii=False)


_RECORD_FIELDS = (
    "anime_title",
    "episode_number",
    "episode_title",
    "release_group",
    "release_version",
    "release_information",
    "video_resolution",
    "video_term",
    "audio_term",
    "source",
    "file_extension",
    "file_checksum",
    "anime_year",
    "anime_season",
    "anime_type",
    "language",
    "subtitles",
    "volume_number",
)
