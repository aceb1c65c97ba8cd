#!/usr/bin/env python3
"""
Dictionary loader utility for centralized dictionary loading and caching.

Provides a single point of access for the keyword dictionaries and JSON
schemas shipped inside the package, with caching to avoid redundant reads.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_DICTIONARY = "anime-dictionary.json"


class DictionaryLoader:
    """Centralized dictionary loader with caching support."""

    _cache: Dict[str, Any] = {}

    @staticmethod
    def get_dictionary_path(dictionary_name: str = DEFAULT_DICTIONARY) -> Path:
        """
        Get the absolute path to a dictionary file.

        Args:
            dictionary_name: Name of the dictionary file

        Returns:
            Absolute path to the dictionary file
        """
        return Path(__file__).resolve().parent / "dictionaries" / dictionary_name

    @staticmethod
    def get_schema_path(schema_name: str) -> Path:
        """Absolute path to a JSON schema shipped with the package."""
        return Path(__file__).resolve().parent / "schemas" / schema_name

    @classmethod
    def _read_json(cls, cache_key: str, path: Path, use_cache: bool) -> Optional[Any]:
        if use_cache and cache_key in cls._cache:
            return cls._cache[cache_key]

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError, IOError) as exc:
            logger.warning("Could not load %s: %s", path, exc)
            return None

        if use_cache:
            cls._cache[cache_key] = data
        return data

    @classmethod
    def load_dictionary(
        cls,
        dictionary_name: str = DEFAULT_DICTIONARY,
        use_cache: bool = True
    ) -> Optional[Any]:
        """
        Load a dictionary from the dictionaries folder.

        Args:
            dictionary_name: Name of the dictionary file to load
            use_cache: Whether to use cached version if available

        Returns:
            Dictionary contents, or None if loading fails
        """
        return cls._read_json(
            f"dictionary:{dictionary_name}",
            cls.get_dictionary_path(dictionary_name),
            use_cache,
        )

    @classmethod
    def load_schema(cls, schema_name: str, use_cache: bool = True) -> Optional[Dict[str, Any]]:
        """Load a JSON schema from the schemas folder, or None if it is missing."""
        return cls._read_json(f"schema:{schema_name}", cls.get_schema_path(schema_name), use_cache)

    @classmethod
    def get_section(
        cls,
        section_name: str,
        dictionary_name: str = DEFAULT_DICTIONARY,
        use_cache: bool = True
    ) -> Any:
        """
        Load a specific section from a dictionary.

        Args:
            section_name: Name of the section to retrieve (e.g., 'file_extensions')
            dictionary_name: Name of the dictionary file
            use_cache: Whether to use cached version if available

        Returns:
            The requested section, or None if not found
        """
        dictionary = cls.load_dictionary(dictionary_name, use_cache)
        if dictionary is None:
            return None

        return dictionary.get(section_name)

    @classmethod
    def clear_cache(cls, dictionary_name: Optional[str] = None) -> None:
        """
        Clear the dictionary cache.

        Args:
            dictionary_name: Specific dictionary to clear, or None to clear all
        """
        if dictionary_name:
            cls._cache.pop(f"dictionary:{dictionary_name}", None)
        else:
            cls._cache.clear()
