#!/usr/bin/env python3
"""Parser configuration shared by the tokenizer, classifier and assembler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .tokenizer import DEFAULT_DELIMITERS


@dataclass(frozen=True)
class ParserOptions:
    """
    Toggles for a parse run.

    Attributes:
        allowed_delimiters: Characters the tokenizer splits on.
        ignored_strings: Substrings removed from the filename before tokenizing.
        parse_episode_number: Run the episode number strategies.
        parse_episode_title: Assemble an episode title after the episode number.
        parse_file_extension: Split a known file extension off the filename.
        parse_release_group: Look for a release group.
    """

    allowed_delimiters: str = DEFAULT_DELIMITERS
    ignored_strings: Tuple[str, ...] = field(default_factory=tuple)
    parse_episode_number: bool = True
    parse_episode_title: bool = True
    parse_file_extension: bool = True
    parse_release_group: bool = True
