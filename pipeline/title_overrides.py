#!/usr/bin/env python3
"""
Title override layer.

Two rule sets are consulted, the user's own rules before the shipped
global rules:

- exact-match substitutions (optionally scoped to a release group) that
  rename a parsed title to the name the catalog knows it by;
- overrides keyed by AniList id, used when the caller knows the id;
- case-insensitive regex rewrites (``pattern_match``, then
  ``fallback_patterns`` by priority), tried only when no exact match
  applies;
- title-scoped episode mappings that move a range of episodes of one
  title onto another title with an offset.

Rule documents are JSON with comments (JSONC), either bare or wrapped in
an ``{"overrides": {...}}`` envelope.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from jsonschema import Draft7Validator

from .dictionary_loader import DictionaryLoader

logger = logging.getLogger(__name__)

OVERRIDES_SCHEMA = "title-overrides.schema.json"

_JSONC_COMMENT = re.compile(r'("(?:[^"\\]|\\.)*")|//[^\n]*|/\*.*?\*/', re.DOTALL)
_JSONC_TRAILING_COMMA = re.compile(r'("(?:[^"\\]|\\.)*")|,(\s*[}\]])')


def parse_jsonc(text: str) -> Any:
    """
    Decode JSON that may contain comments and trailing commas.

    Args:
        text: JSONC document

    Returns:
        The decoded value

    Raises:
        ValueError: The text is not valid JSONC
    """
    without_comments = _JSONC_COMMENT.sub(lambda m: m.group(1) or "", text or "")
    cleaned = _JSONC_TRAILING_COMMA.sub(lambda m: m.group(1) or m.group(2), without_comments)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError(f"JSONC parsing failed: {exc}") from exc


@dataclass(frozen=True)
class ExactMatch:
    original_title: str
    new_title: str


@dataclass(frozen=True)
class GroupExactMatch:
    """Exact match that only applies to releases from one group."""

    release_group: str
    original_title: str
    new_title: str


DEFAULT_PATTERN_PRIORITY = 999

# Replacement strings use $1 / $& / $$ references.
_REPLACEMENT_REFERENCE = re.compile(r"\$(\$|&|[1-9][0-9]?)")


def _replacement_template(replacement: str) -> Tuple[str, int]:
    """Convert a ``$1``-style replacement to an ``re`` template; also return the highest group used."""
    highest = 0

    def convert(match: "re.Match[str]") -> str:
        nonlocal highest
        reference = match.group(1)
        if reference == "$":
            return "$"
        if reference == "&":
            return r"\g<0>"
        highest = max(highest, int(reference))
        return rf"\g<{reference}>"

    template = _REPLACEMENT_REFERENCE.sub(convert, replacement.replace("\\", "\\\\"))
    return template, highest


@dataclass(frozen=True)
class PatternRule:
    """Case-insensitive regex rewrite of a title."""

    pattern: str
    replacement: str
    priority: int = DEFAULT_PATTERN_PRIORITY
    description: Optional[str] = None
    regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)
    template: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            regex = re.compile(self.pattern, re.IGNORECASE)
        except re.error as exc:
            raise ValueError(f"Invalid pattern {self.pattern!r}: {exc}") from exc
        template, highest = _replacement_template(self.replacement)
        if highest > regex.groups:
            raise ValueError(f"Replacement {self.replacement!r} refers to group {highest} of {self.pattern!r}")
        object.__setattr__(self, "regex", regex)
        object.__setattr__(self, "template", template)

    def rewrite(self, title: str, count: int = 0) -> str:
        """Replace the first ``count`` matches (all when 0)."""
        return self.regex.sub(self.template, title, count=count)


@dataclass(frozen=True)
class EpisodeMapping:
    """
    Move episodes ``source_episode_start..source_episode_end`` of ``source_title``
    onto ``dest_title`` starting at ``dest_episode_start``.
    """

    source_title: str
    source_episode_start: int
    source_episode_end: int
    dest_title: str
    dest_episode_start: int
    dest_episode_end: Optional[int] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if self.source_episode_start > self.source_episode_end:
            raise ValueError(f"Reversed source range for {self.source_title!r}")
        expected_end = self.dest_episode_start + (self.source_episode_end - self.source_episode_start)
        if self.dest_episode_end is None:
            object.__setattr__(self, "dest_episode_end", expected_end)
        elif self.dest_episode_end != expected_end:
            raise ValueError(
                f"Destination range of {self.source_title!r} does not match the source range length"
            )

    def covers(self, title: str, episode: int) -> bool:
        return title == self.source_title and self.source_episode_start <= episode <= self.source_episode_end

    def remap(self, episode: int) -> int:
        return self.dest_episode_start + (episode - self.source_episode_start)


@dataclass(frozen=True)
class EpisodeMappingResult:
    title: Any
    episode: Any
    mapping: Optional[EpisodeMapping] = None


def _schema_validator() -> Optional[Draft7Validator]:
    schema = DictionaryLoader.load_schema(OVERRIDES_SCHEMA)
    if schema is None:
        return None
    return Draft7Validator(schema)


def _definition_validator(definition: str) -> Optional[Draft7Validator]:
    schema = DictionaryLoader.load_schema(OVERRIDES_SCHEMA)
    if schema is None:
        return None
    return Draft7Validator(schema["definitions"][definition])


def _load_entries(entries: List[Tuple[Any, Any]], definition: str, section: str, name: str,
                  build: Callable[[Any, Any], Any]) -> List[Any]:
    """Validate and build each entry of a rule list; bad entries are logged and skipped."""
    validator = _definition_validator(definition)
    loaded: List[Any] = []
    for key, entry in entries:
        if validator is not None:
            error = next(iter(validator.iter_errors(entry)), None)
            if error is not None:
                logger.warning("%s: skipping %s[%s]: %s", name or "overrides", section, key, error.message)
                continue
        try:
            loaded.append(build(key, entry))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("%s: skipping %s[%s]: %s", name or "overrides", section, key, exc)
    return loaded


@dataclass(frozen=True)
class AnilistOverride:
    """Title to use for a known AniList id, whatever the release called it."""

    anilist_id: str
    override_title: str


def _build_mapping(index: Any, entry: Mapping[str, Any]) -> EpisodeMapping:
    return EpisodeMapping(
        source_title=entry["source_title"],
        source_episode_start=entry["source_episode_start"],
        source_episode_end=entry["source_episode_end"],
        dest_title=entry["dest_title"],
        dest_episode_start=entry["dest_episode_start"],
        dest_episode_end=entry.get("dest_episode_end"),
        description=entry.get("description"),
    )


def _build_pattern(index: Any, entry: Mapping[str, Any]) -> PatternRule:
    return PatternRule(
        pattern=entry["pattern"],
        replacement=entry["replacement"],
        priority=entry.get("priority") or DEFAULT_PATTERN_PRIORITY,
        description=entry.get("description"),
    )


def _build_anilist(anilist_id: Any, entry: Mapping[str, Any]) -> AnilistOverride:
    return AnilistOverride(str(anilist_id).strip(), entry["override_title"])


@dataclass(frozen=True)
class OverrideRuleSet:
    """Immutable snapshot of one override document."""

    name: str = ""
    exact_matches: Tuple[ExactMatch, ...] = ()
    group_matches: Tuple[GroupExactMatch, ...] = ()
    episode_mappings: Tuple[EpisodeMapping, ...] = ()
    anilist_overrides: Tuple[AnilistOverride, ...] = ()
    pattern_rules: Tuple[PatternRule, ...] = ()
    fallback_rules: Tuple[PatternRule, ...] = ()
    _exact_index: Mapping[str, str] = field(init=False, repr=False, compare=False)
    _group_index: Mapping[Tuple[str, str], str] = field(init=False, repr=False, compare=False)
    _anilist_index: Mapping[str, str] = field(init=False, repr=False, compare=False)
    _targets: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        exact: Dict[str, str] = {}
        for rule in self.exact_matches:
            exact.setdefault(rule.original_title, rule.new_title)
        groups: Dict[Tuple[str, str], str] = {}
        for rule in self.group_matches:
            groups.setdefault((rule.release_group, rule.original_title), rule.new_title)
        anilist: Dict[str, str] = {}
        for override in self.anilist_overrides:
            anilist.setdefault(override.anilist_id, override.override_title)
        object.__setattr__(self, "_exact_index", MappingProxyType(exact))
        object.__setattr__(self, "_group_index", MappingProxyType(groups))
        object.__setattr__(self, "_anilist_index", MappingProxyType(anilist))
        object.__setattr__(self, "_targets", frozenset(exact.values()) | frozenset(groups.values()))
        # Lowest priority number first; equal priorities keep document order.
        object.__setattr__(self, "fallback_rules", tuple(sorted(self.fallback_rules, key=lambda r: r.priority)))

    @classmethod
    def from_document(cls, document: Mapping[str, Any], name: str = "") -> "OverrideRuleSet":
        """
        Build a rule set from a decoded override document.

        Args:
            document: ``{"overrides": {...}}`` or the bare overrides object
            name: Label used in log messages

        Returns:
            OverrideRuleSet

        Raises:
            ValueError: The document does not match the overrides schema
        """
        if not isinstance(document, Mapping):
            raise ValueError(f"{name or 'overrides'}: document must be a JSON object")
        overrides = document.get("overrides", document)
        if not isinstance(overrides, Mapping):
            raise ValueError(f"{name or 'overrides'}: 'overrides' must be a JSON object")

        validator = _schema_validator()
        if validator is not None:
            errors = sorted(validator.iter_errors(overrides), key=lambda e: list(e.absolute_path))
            if errors:
                messages = "; ".join(
                    f"{' > '.join(str(p) for p in error.absolute_path) or 'root'}: {error.message}"
                    for error in errors
                )
                raise ValueError(f"{name or 'overrides'}: {messages}")

        exact = tuple(
            ExactMatch(original, new) for original, new in (overrides.get("exact_match") or {}).items()
        )
        groups = tuple(
            GroupExactMatch(group, original, new)
            for group, titles in (overrides.get("group_specific") or {}).items()
            for original, new in titles.items()
        )
        mappings = _load_entries(list(enumerate(overrides.get("episode_mappings") or [])),
                                 "episode_mapping", "episode_mappings", name, _build_mapping)
        anilist = _load_entries(list((overrides.get("anilist_specific") or {}).items()),
                                "anilist_override", "anilist_specific", name, _build_anilist)
        patterns = _load_entries(list(enumerate(overrides.get("pattern_match") or [])),
                                 "pattern_rule", "pattern_match", name, _build_pattern)
        fallbacks = _load_entries(list(enumerate(overrides.get("fallback_patterns") or [])),
                                  "pattern_rule", "fallback_patterns", name, _build_pattern)

        rule_set = cls(
            name=name,
            exact_matches=exact,
            group_matches=groups,
            episode_mappings=tuple(mappings),
            anilist_overrides=tuple(anilist),
            pattern_rules=tuple(patterns),
            fallback_rules=tuple(fallbacks),
        )
        logger.info(
            "Loaded %s overrides: %d exact, %d group-specific, %d AniList, %d patterns, "
            "%d fallback patterns, %d episode mappings",
            name or "unnamed", len(exact), len(groups), len(anilist), len(patterns),
            len(fallbacks), len(mappings),
        )
        return rule_set

    @classmethod
    def from_text(cls, text: str, name: str = "") -> "OverrideRuleSet":
        return cls.from_document(parse_jsonc(text), name)

    @classmethod
    def load(cls, path: Union[str, Path], name: Optional[str] = None) -> "OverrideRuleSet":
        """Read a JSONC override file from disk."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_text(f.read(), name or path.name)

    def find_exact(self, title: str, release_group: Optional[str] = None) -> Optional[str]:
        """Replacement for ``title``; a group-specific rule wins over a plain one."""
        if release_group:
            replacement = self._group_index.get((release_group, title))
            if replacement:
                return replacement
        return self._exact_index.get(title)

    def produces(self, title: str) -> bool:
        """Whether ``title`` is the result of one of this set's exact-match rules."""
        return title in self._targets

    def find_anilist(self, anilist_id: Any) -> Optional[str]:
        if anilist_id is None or isinstance(anilist_id, bool):
            return None
        return self._anilist_index.get(str(anilist_id).strip())

    def rewrite(self, title: str) -> Optional[str]:
        """
        First pattern rewrite that changes ``title``.

        ``pattern_match`` rules replace the first occurrence, in document
        order; ``fallback_patterns`` then replace every occurrence, lowest
        priority first.
        """
        for rules, count in ((self.pattern_rules, 1), (self.fallback_rules, 0)):
            for rule in rules:
                rewritten = rule.rewrite(title, count)
                if rewritten != title:
                    logger.debug("%s pattern %r: %r -> %r", self.name, rule.pattern, title, rewritten)
                    return rewritten
        return None

    def find_mapping(self, title: str, episode: int) -> Optional[EpisodeMapping]:
        for mapping in self.episode_mappings:
            if mapping.covers(title, episode):
                return mapping
        return None

    def __len__(self) -> int:
        return (len(self.exact_matches) + len(self.group_matches) + len(self.episode_mappings)
                + len(self.anilist_overrides) + len(self.pattern_rules) + len(self.fallback_rules))


def _as_episode(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


class TitleOverrides:
    """User and global override rule sets, user first."""

    def __init__(self, user: Optional[OverrideRuleSet] = None,
                 global_: Optional[OverrideRuleSet] = None):
        self._user = user or OverrideRuleSet(name="user")
        self._global = global_ or OverrideRuleSet(name="global")

    @property
    def user_rules(self) -> OverrideRuleSet:
        return self._user

    @property
    def global_rules(self) -> OverrideRuleSet:
        return self._global

    def replace_user_rules(self, rules: OverrideRuleSet) -> None:
        self._user = rules

    def replace_global_rules(self, rules: OverrideRuleSet) -> None:
        self._global = rules

    def apply_overrides(self, title: str, release_group: Optional[str] = None,
                        anilist_id: Any = None) -> str:
        """
        Rename ``title`` through the override rules.

        Order of precedence:
        1. User exact matches (group-specific first). A user match ends the
           search: global rules never rewrite a user's replacement, nor any
           title a user rule produces.
        2. AniList-specific overrides, when ``anilist_id`` is given.
        3. Global exact matches (group-specific first).
        4. Pattern rewrites, user set then global set, only when no exact
           match applied.

        Exact-match chains are followed within these limits until no rule
        applies, so applying the result again changes nothing. A chain that
        loops back on itself is logged and stops at the last new title.
        Pattern rewrites run once and are not followed.

        Args:
            title: Parsed anime title
            release_group: Release group, enabling group-specific rules
            anilist_id: AniList id of the title, when already known

        Returns:
            The substituted title, or ``title`` when no rule applies
        """
        if not title:
            return title

        user_owned = self._user.produces(title) or self._user.find_exact(title, release_group) is not None
        if not user_owned and anilist_id is not None:
            for rules in (self._user, self._global):
                replacement = rules.find_anilist(anilist_id)
                if replacement:
                    logger.debug("%s AniList override %s: %r -> %r", rules.name, anilist_id, title, replacement)
                    return replacement

        current = self._substitute(title, release_group)
        if current != title or user_owned:
            return current

        for rules in (self._user, self._global):
            rewritten = rules.rewrite(title)
            if rewritten:
                return rewritten
        return title

    def _substitute(self, title: str, release_group: Optional[str]) -> str:
        """Follow exact-match substitutions; once a user rule fires the global set is skipped."""
        seen = {title}
        current = title
        user_applied = False
        while True:
            rules = self._user
            replacement = rules.find_exact(current, release_group)
            if replacement:
                user_applied = True
            elif user_applied or rules.produces(current):
                return current
            else:
                rules = self._global
                replacement = rules.find_exact(current, release_group)
            if not replacement or replacement == current:
                return current
            if replacement in seen:
                logger.warning("Title override cycle at %r -> %r", current, replacement)
                return current
            logger.debug("%s override: %r -> %r", rules.name, current, replacement)
            seen.add(replacement)
            current = replacement

    def apply_episode_mappings(self, title: str, episode: Any) -> EpisodeMappingResult:
        """
        Move an episode onto another title when a mapping covers it.

        Args:
            title: Anime title, after apply_overrides
            episode: Episode number, as int or digit string

        Returns:
            EpisodeMappingResult; the input is returned unchanged when no
            mapping applies
        """
        number = _as_episode(episode)
        if not title or number is None:
            return EpisodeMappingResult(title, episode)

        for rules in (self._user, self._global):
            mapping = rules.find_mapping(title, number)
            if mapping is not None:
                mapped = mapping.remap(number)
                logger.debug("%s episode mapping: %r %d -> %r %d",
                             rules.name, title, number, mapping.dest_title, mapped)
                return EpisodeMappingResult(mapping.dest_title, mapped, mapping)

        return EpisodeMappingResult(title, episode)

    def apply(self, title: str, episode: Any, release_group: Optional[str] = None) -> EpisodeMappingResult:
        """Title overrides followed by episode mappings."""
        return self.apply_episode_mappings(self.apply_overrides(title, release_group), episode)
