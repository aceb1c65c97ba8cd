#!/usr/bin/env python3
"""
Relation resolver: remaps (anime id, episode) pairs through the relations table.

Episode 14 of a release that numbers its second cour continuously becomes
episode 1 of the second season's own entry. Pairs that no rule covers come
back unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from .relations import EpisodeRelationRule, RelationsTable
from .relations_parser import parse_relations

logger = logging.getLogger(__name__)

IdOrEpisode = Union[int, str]


@dataclass(frozen=True)
class Resolution:
    """Outcome of a resolve call; ``rule`` is None when nothing applied."""

    anime_id: Any
    episode: Any
    rule: Optional[EpisodeRelationRule] = None

    @property
    def remapped(self) -> bool:
        return self.rule is not None


class RelationsStore:
    """
    Holder of the current RelationsTable.

    A refresh builds a complete new table and swaps it in with a single
    assignment, so readers see either the old table or the new one.
    """

    def __init__(self, table: Optional[RelationsTable] = None, id_field: str = "anilist"):
        self._table = table if table is not None else RelationsTable()
        self.id_field = id_field

    @property
    def table(self) -> RelationsTable:
        return self._table

    def replace(self, table: RelationsTable) -> None:
        self._table = table

    def refresh(self, text: str) -> RelationsTable:
        """Parse ``text`` and make it the current table."""
        table = parse_relations(text, self.id_field)
        self._table = table
        logger.info("Relations refreshed: %d rules", len(table))
        return table


def _as_int(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


class RelationResolver:
    """Resolver for continuous-numbering relations."""

    def __init__(self, relations: Union[RelationsStore, RelationsTable, None] = None):
        if isinstance(relations, RelationsTable):
            relations = RelationsStore(relations)
        self.store = relations if relations is not None else RelationsStore()

    def resolve(self, source_id: IdOrEpisode, episode: IdOrEpisode) -> Resolution:
        """
        Map an episode of ``source_id`` to its destination anime and episode.

        Args:
            source_id: Anime id, as int or digit string
            episode: Episode number, as int or digit string

        Returns:
            Resolution with the destination id and episode, or the input
            unchanged when no rule covers it
        """
        source_key = _as_int(source_id)
        number = _as_int(episode)
        if source_key is None or number is None:
            return Resolution(source_id, episode)

        rule = self.store.table.find(source_key, number)
        if rule is None:
            return Resolution(source_id, episode)

        mapped = rule.remap(number)
        if rule.rescue:
            logger.debug("Rescue rule applied: %s", rule.raw_rule)
        logger.debug("Resolved %s episode %s to %s episode %s", source_key, number, rule.dest_id, mapped)
        return Resolution(rule.dest_id, mapped, rule)

    def reverse(self, dest_id: IdOrEpisode, episode: IdOrEpisode) -> Resolution:
        """Map a destination episode back to the source anime that numbers it continuously."""
        dest_key = _as_int(dest_id)
        number = _as_int(episode)
        if dest_key is None or number is None:
            return Resolution(dest_id, episode)

        rule = self.store.table.find_reverse(dest_key, number)
        if rule is None:
            return Resolution(dest_id, episode)
        return Resolution(rule.source_id, rule.reverse_remap(number), rule)

    def has_relations(self, source_id: IdOrEpisode) -> bool:
        source_key = _as_int(source_id)
        return source_key is not None and self.store.table.has_relations(source_key)
