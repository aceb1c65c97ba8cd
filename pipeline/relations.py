#!/usr/bin/env python3
"""
Episode relation rules and the immutable table that indexes them.

A rule maps an inclusive episode range of one anime onto an equal-length
range of another, e.g. episodes 14-25 of a continuously numbered release
onto episodes 1-12 of the second season. The table keeps each source's
rules sorted by start episode so a lookup is a binary search.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

OPEN_END = 9999


@dataclass(frozen=True)
class AnimeIds:
    """The same anime as known to MyAnimeList, Kitsu and AniList."""

    mal: Optional[int] = None
    kitsu: Optional[int] = None
    anilist: Optional[int] = None

    def get(self, id_field: str) -> Optional[int]:
        return getattr(self, id_field)


@dataclass(frozen=True)
class EpisodeRelationRule:
    """
    One ``source:start-end -> dest:start-end`` relation.

    Attributes:
        source_id: Source anime id in the table's id namespace.
        dest_id: Destination anime id in the same namespace.
        rescue: The rule line ended with "!"; kept for diagnostics only.
        raw_rule: The rule line as it appeared in the feed.
        open_ended: The feed gave "?" as an end episode.
    """

    source_id: int
    source_episode_start: int
    source_episode_end: int
    dest_id: int
    dest_episode_start: int
    dest_episode_end: int
    rescue: bool = False
    raw_rule: str = ""
    source_title: Optional[str] = None
    dest_title: Optional[str] = None
    source_ids: AnimeIds = field(default_factory=AnimeIds)
    dest_ids: AnimeIds = field(default_factory=AnimeIds)
    open_ended: bool = False

    def __post_init__(self) -> None:
        if self.source_episode_start > self.source_episode_end:
            raise ValueError(f"Source range is reversed: {self.raw_rule or self}")
        source_length = self.source_episode_end - self.source_episode_start
        dest_length = self.dest_episode_end - self.dest_episode_start
        if source_length != dest_length:
            raise ValueError(
                f"Source and destination ranges differ in length ({source_length + 1} vs "
                f"{dest_length + 1}): {self.raw_rule or self}"
            )

    def covers(self, episode: int) -> bool:
        return self.source_episode_start <= episode <= self.source_episode_end

    def covers_destination(self, episode: int) -> bool:
        return self.dest_episode_start <= episode <= self.dest_episode_end

    def remap(self, episode: int) -> int:
        """Destination episode for a covered source episode."""
        return self.dest_episode_start + (episode - self.source_episode_start)

    def reverse_remap(self, episode: int) -> int:
        """Source episode for a covered destination episode."""
        return self.source_episode_start + (episode - self.dest_episode_start)

    def overlaps(self, other: "EpisodeRelationRule") -> bool:
        return (self.source_id == other.source_id
                and self.source_episode_start <= other.source_episode_end
                and other.source_episode_start <= self.source_episode_end)


class RelationsTable:
    """Read-only index of relation rules keyed by source anime id."""

    def __init__(
        self,
        rules: Iterable[EpisodeRelationRule] = (),
        meta: Optional[Mapping[str, str]] = None,
        titles: Optional[Mapping[int, str]] = None,
    ):
        """
        Build the index.

        Rules are taken in order; a rule overlapping an already accepted rule
        for the same source is dropped with a warning.

        Args:
            rules: Relation rules in feed order
            meta: Key/value header of the feed
            titles: Anime id to display title
        """
        by_source: Dict[int, List[EpisodeRelationRule]] = {}
        by_dest: Dict[int, List[EpisodeRelationRule]] = {}
        dropped = 0

        for rule in rules:
            accepted = by_source.setdefault(rule.source_id, [])
            clash = next((other for other in accepted if other.overlaps(rule)), None)
            if clash is not None:
                logger.warning("Dropping relation rule %r: overlaps %r", rule.raw_rule, clash.raw_rule)
                dropped += 1
                continue
            accepted.append(rule)
            by_dest.setdefault(rule.dest_id, []).append(rule)

        self._rules: Mapping[int, Tuple[EpisodeRelationRule, ...]] = MappingProxyType({
            source_id: tuple(sorted(source_rules, key=lambda r: r.source_episode_start))
            for source_id, source_rules in by_source.items()
            if source_rules
        })
        self._starts: Mapping[int, Tuple[int, ...]] = MappingProxyType({
            source_id: tuple(rule.source_episode_start for rule in source_rules)
            for source_id, source_rules in self._rules.items()
        })
        self._by_dest: Mapping[int, Tuple[EpisodeRelationRule, ...]] = MappingProxyType({
            dest_id: tuple(dest_rules) for dest_id, dest_rules in by_dest.items()
        })
        self.meta: Mapping[str, str] = MappingProxyType(dict(meta or {}))
        self.titles: Mapping[int, str] = MappingProxyType(dict(titles or {}))
        self.dropped = dropped

    def rules_for(self, source_id: int) -> Tuple[EpisodeRelationRule, ...]:
        return self._rules.get(source_id, ())

    def has_relations(self, source_id: int) -> bool:
        return source_id in self._rules

    def find(self, source_id: int, episode: int) -> Optional[EpisodeRelationRule]:
        """Rule whose source range contains ``episode``, or None."""
        starts = self._starts.get(source_id)
        if not starts:
            return None
        position = bisect_right(starts, episode) - 1
        if position < 0:
            return None
        rule = self._rules[source_id][position]
        return rule if rule.covers(episode) else None

    def find_reverse(self, dest_id: int, episode: int) -> Optional[EpisodeRelationRule]:
        """First rule, in feed order, whose destination range contains ``episode``."""
        for rule in self._by_dest.get(dest_id, ()):
            if rule.covers_destination(episode):
                return rule
        return None

    @property
    def source_ids(self) -> Tuple[int, ...]:
        return tuple(self._rules)

    def __iter__(self) -> Iterator[EpisodeRelationRule]:
        for source_rules in self._rules.values():
            yield from source_rules

    def __len__(self) -> int:
        return sum(len(source_rules) for source_rules in self._rules.values())
