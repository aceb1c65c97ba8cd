#!/usr/bin/env python3
"""
Parser for the anime-relations text format.

The feed has a ``::meta`` section of ``- key: value`` lines and a
``::rules`` section of lines such as::

    # Kanojo, Okarishimasu -> ~ 2nd Season
    - 113813|42963|113813:13-24 -> 124410|44236|124410:1-12!

Ids are ``mal|kitsu|anilist``; ``?`` marks an unknown id or an open end,
``~`` in a destination copies the source id and a trailing ``!`` marks a
rescue rule. Comment lines of the form ``Source -> ~ Destination`` name
the anime that the following rules belong to.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from .relations import OPEN_END, AnimeIds, EpisodeRelationRule, RelationsTable

logger = logging.getLogger(__name__)

ID_FIELDS = ("mal", "kitsu", "anilist")

_META_LINE = re.compile(r"^-\s*([^:]+):\s*(.+)$")
_COMMENT_WITH_TILDE = re.compile(r"^(.+?)\s*->\s*~\s*(.+)$")
_COMMENT_WITHOUT_TILDE = re.compile(r"^(.+?)\s*->\s*([^~].+)$")
_TRAILING_NUMBER = re.compile(r"\s+\d+$")
_SEASON_IDENTIFIER = re.compile(r"\s+(?:S\d+|Season\s+\d+)$", re.IGNORECASE)


@dataclass(frozen=True)
class TitleComment:
    """Titles announced by a ``# Source -> ~ Destination`` comment."""

    source_title: str
    destination_suffix: str
    destinations: Tuple[str, ...]
    has_tilde: bool

    @property
    def is_multi_season(self) -> bool:
        return len(self.destinations) > 1

    def destination_title(self, rule_index: int) -> str:
        """
        Title of the destination for the ``rule_index``-th rule of this source.

        Args:
            rule_index: Zero-based count of earlier rules for the same source

        Returns:
            Destination title
        """
        if not self.is_multi_season:
            if not self.has_tilde:
                return self.destination_suffix
            if self.destination_suffix.startswith(":"):
                return f"{self.source_title}{self.destination_suffix}"
            return f"{self.source_title} {self.destination_suffix}"

        if rule_index >= len(self.destinations):
            return f"{self.source_title} Season {rule_index + 1}"

        suffix = self.destinations[rule_index]
        if not self.has_tilde:
            return suffix
        if _TRAILING_NUMBER.search(self.source_title):
            return _TRAILING_NUMBER.sub(f" {suffix}", self.source_title)
        if _SEASON_IDENTIFIER.search(self.source_title):
            return _SEASON_IDENTIFIER.sub(f" {suffix}", self.source_title)
        return f"{self.source_title} {suffix}"


def parse_title_comment(line: str) -> Optional[TitleComment]:
    """Parse ``# Source -> ~ Destination(s)``; None for ordinary comments."""
    content = line.lstrip("#").strip()
    match = _COMMENT_WITH_TILDE.match(content)
    has_tilde = match is not None
    if match is None:
        match = _COMMENT_WITHOUT_TILDE.match(content)
    if match is None:
        return None

    suffix = match.group(2).strip()
    return TitleComment(
        source_title=match.group(1).strip(),
        destination_suffix=suffix,
        destinations=tuple(part.strip() for part in suffix.split(",")),
        has_tilde=has_tilde,
    )


def _parse_id(value: str) -> Optional[int]:
    value = value.strip()
    if value == "?":
        return None
    if not value.isdecimal():
        raise ValueError(f"Invalid anime id {value!r}")
    return int(value)


def _parse_range(value: str) -> Tuple[Optional[int], Optional[int]]:
    """Return (start, end); end is None for an open range and start is None for "?"."""
    value = value.strip()
    if "-" in value:
        start_text, end_text = (part.strip() for part in value.split("-", 1))
    else:
        start_text = end_text = value

    start = None if start_text == "?" else int(start_text)
    end = None if end_text == "?" else int(end_text)
    return start, end


def _parse_side(part: str, source_ids: Optional[AnimeIds] = None):
    """Split ``mal|kitsu|anilist:range`` into ids, (start, end) and the rescue flag."""
    part = part.strip()
    rescue = part.endswith("!")
    if rescue:
        part = part[:-1]

    ids_text, colon, range_text = part.rpartition(":")
    if not colon:
        raise ValueError(f"Missing episode range in {part!r}")
    raw_ids = ids_text.split("|")
    if len(raw_ids) != 3:
        raise ValueError(f"Expected three ids in {ids_text!r}")

    values: List[Optional[int]] = []
    for index, raw_id in enumerate(raw_ids):
        if raw_id.strip() == "~":
            if source_ids is None:
                raise ValueError("'~' is only allowed in the destination")
            values.append(source_ids.get(ID_FIELDS[index]))
        else:
            values.append(_parse_id(raw_id))

    return AnimeIds(*values), _parse_range(range_text), rescue


def parse_rule_line(line: str, id_field: str = "anilist") -> Optional[EpisodeRelationRule]:
    """
    Parse one ``- source -> destination`` rule line.

    Args:
        line: The stripped rule line including its leading dash
        id_field: Which of mal/kitsu/anilist keys the rule

    Returns:
        The rule, or None when an essential id or start episode is unknown

    Raises:
        ValueError: The line is malformed
    """
    body = line[1:].strip()
    parts = body.split(" -> ")
    if len(parts) != 2:
        raise ValueError("Expected exactly one ' -> ' separator")

    source_ids, (source_start, source_end), source_rescue = _parse_side(parts[0])
    dest_ids, (dest_start, dest_end), dest_rescue = _parse_side(parts[1], source_ids)

    source_id = source_ids.get(id_field)
    dest_id = dest_ids.get(id_field)
    if source_id is None or dest_id is None or source_start is None or dest_start is None:
        logger.debug("Skipping relation with unknown id or start: %s", line)
        return None

    open_ended = source_end is None or dest_end is None
    if source_end is None:
        source_end = OPEN_END
    if dest_end is None or open_ended:
        dest_end = dest_start + (source_end - source_start)

    return EpisodeRelationRule(
        source_id=source_id,
        source_episode_start=source_start,
        source_episode_end=source_end,
        dest_id=dest_id,
        dest_episode_start=dest_start,
        dest_episode_end=dest_end,
        rescue=source_rescue or dest_rescue,
        raw_rule=line,
        source_ids=source_ids,
        dest_ids=dest_ids,
        open_ended=open_ended,
    )


def parse_relations(text: str, id_field: str = "anilist") -> RelationsTable:
    """
    Parse an anime-relations document into a RelationsTable.

    Malformed lines are logged and skipped; parsing never fails on content.

    Args:
        text: Full document text
        id_field: Id namespace that keys the table ("mal", "kitsu" or "anilist")

    Returns:
        A new RelationsTable
    """
    if id_field not in ID_FIELDS:
        raise ValueError(f"id_field must be one of {ID_FIELDS}, got {id_field!r}")

    meta: Dict[str, str] = {}
    titles: Dict[int, str] = {}
    rules: List[EpisodeRelationRule] = []
    rules_per_source: Counter = Counter()
    section: Optional[str] = None
    comment: Optional[TitleComment] = None
    skipped = 0

    for line_number, raw_line in enumerate((text or "").splitlines(), 1):
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("#"):
            comment = parse_title_comment(line) or comment
            continue

        if line.startswith("::"):
            section = line[2:].strip()
            continue

        if not line.startswith("-"):
            logger.warning("Line %d: unexpected content %r", line_number, line)
            skipped += 1
            continue

        if section == "meta":
            match = _META_LINE.match(line)
            if match:
                meta[match.group(1).strip()] = match.group(2).strip()
            else:
                logger.warning("Line %d: malformed meta entry %r", line_number, line)
                skipped += 1
            continue

        if section != "rules":
            continue

        try:
            rule = parse_rule_line(line, id_field)
        except ValueError as exc:
            logger.warning("Line %d: skipping malformed rule %r: %s", line_number, line, exc)
            skipped += 1
            continue

        if rule is None:
            skipped += 1
            continue

        if comment is not None:
            rule = replace(
                rule,
                source_title=comment.source_title,
                dest_title=comment.destination_title(rules_per_source[rule.source_id]),
            )
        rules_per_source[rule.source_id] += 1
        rules.append(rule)
        if rule.source_title:
            titles[rule.source_id] = rule.source_title
        if rule.dest_title:
            titles[rule.dest_id] = rule.dest_title

    table = RelationsTable(rules, meta=meta, titles=titles)
    logger.info(
        "Parsed %d relation rules for %d anime (%d lines skipped, %d overlapping)",
        len(table), len(table.source_ids), skipped, table.dropped,
    )
    return table
