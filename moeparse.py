#!/usr/bin/env python3
"""
moeparse - anime release filename parsing and episode resolution.

This module serves two purposes:
1. Library: FilenameParser for turning a release filename into a
   ParsedFilename record, and EpisodeResolutionPipeline for taking that
   record through title overrides, an identity lookup and the relations
   table to a canonical (anime, episode) pair.
2. Command line: reads filenames from a text file (one per line) and
   writes the parse results as JSON lines or an Excel report.

Usage as library:
    from moeparse import FilenameParser
    parser = FilenameParser()
    result = parser.parse("[SubsPlease] Kimetsu no Yaiba - 01 (1080p) [B1A4C5D6].mkv")

Usage from the shell:
    python moeparse.py releases.txt results.xlsx --relations anime-relations.txt
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import unicodedata
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pipeline import (
    Classifier,
    Elements,
    KeywordManager,
    OverrideRuleSet,
    ParsedFilename,
    ParserOptions,
    RelationResolver,
    RelationsStore,
    RuleFeedClient,
    RuleFeedError,
    TitleOverrides,
    Token,
    build_parse_report,
    write_excel_workbook,
)

logger = logging.getLogger("moeparse")

IdentityLookup = Callable[[str], Optional[Any]]

VIDEO_EXTENSIONS = (".mkv", ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".m4v")


# ============================================================================
# CORE PARSING - FilenameParser Class
# ============================================================================

class FilenameParser:
    """Parser for extracting release metadata from anime filenames."""

    def __init__(self, keyword_manager: Optional[KeywordManager] = None,
                 options: Optional[ParserOptions] = None):
        """
        Initialize the filename parser.

        Args:
            keyword_manager: Keyword table to classify with; the shared
                             table from the shipped dictionary when omitted.
            options: Parse toggles; defaults enable every stage.
        """
        self.classifier = Classifier(keyword_manager, options)

    @property
    def options(self) -> ParserOptions:
        return self.classifier.options

    def tokenize(self, filename: object) -> List[Token]:
        """Split a filename stem into tokens without classifying them."""
        if not isinstance(filename, str):
            return []
        stem = filename
        if self.options.parse_file_extension:
            stem, _ = self.classifier.split_extension(filename)
        return self.classifier.tokenizer.tokenize(stem)

    def classify(self, filename: object) -> Elements:
        """Elements for a filename; empty for unusable input."""
        return self.classifier.parse(filename)[1]

    def parse(self, filename: object) -> Optional[ParsedFilename]:
        """
        Full parsing pipeline.

        Pipeline order:
        1. Split off the file extension and drop ignored strings
        2. Tokenize (brackets, delimiters, peek phrases)
        3. Classifier passes (checksum, keywords, release group, numbers)
        4. Episode number strategies
        5. Title, release group and episode title assembly

        Args:
            filename: Release filename including its extension

        Returns:
            ParsedFilename, or None when ``filename`` is not a non-empty string
        """
        if not isinstance(filename, str) or not filename.strip():
            return None
        tokens, elements = self.classifier.parse(filename)
        return ParsedFilename.from_elements(filename, elements, tokens)

    def is_anime_file(self, filename: object) -> bool:
        """Video file whose name yields a title, an episode number or a release group."""
        if not isinstance(filename, str) or not filename.lower().endswith(VIDEO_EXTENSIONS):
            return False
        result = self.parse(filename)
        return result is not None and bool(result.anime_title or result.episode_number or result.release_group)

    def normalize(self, filename: object) -> str:
        """
        Comparison key for duplicate detection.

        Releases of the same episode from the same group normalize to the
        same key, e.g. ``"kimetsu no yaiba ep01 [subsplease]"``, whatever
        their resolution, checksum or extension.

        Args:
            filename: Release filename

        Returns:
            ``"<title> ep<NN> [<group>]"`` lowercased, with missing parts left
            out; the lowercased filename when nothing was recognised; ``""``
            for unusable input
        """
        if not isinstance(filename, str) or not filename:
            return ""
        result = self.parse(filename)
        if result is None:
            return filename.lower().strip()

        parts = []
        if result.anime_title:
            parts.append(result.anime_title.lower().strip())
        if result.episode_number:
            parts.append(f"ep{result.episode_number.zfill(2)}")
        if result.release_group:
            parts.append(f"[{result.release_group.lower()}]")
        return " ".join(parts) or filename.lower().strip()


# ============================================================================
# RESOLUTION - Overrides, identity lookup and relations
# ============================================================================

@dataclass
class CanonicalEpisode:
    """Canonical identity of a release, used for matching and deduplication."""

    filename: str
    parsed_title: str
    title: str
    episode: Optional[int]
    anime_id: Optional[Any] = None
    release_group: str = ""
    title_overridden: bool = False
    episode_mapped: bool = False
    relation_applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _episode_int(value: str) -> Optional[int]:
    value = (value or "").strip()
    return int(value) if value.isdecimal() else None


class EpisodeResolutionPipeline:
    """
    Runs a filename through parsing, title overrides, identity lookup and
    the relations table, in that order.
    """

    def __init__(
        self,
        parser: Optional[FilenameParser] = None,
        overrides: Optional[TitleOverrides] = None,
        resolver: Optional[RelationResolver] = None,
    ):
        self.parser = parser or FilenameParser()
        self.overrides = overrides or TitleOverrides()
        self.resolver = resolver or RelationResolver()
        self.logger = logging.getLogger(__name__)

    def resolve_release(self, filename: Union[str, ParsedFilename],
                        identity_lookup: Optional[IdentityLookup] = None) -> Optional[CanonicalEpisode]:
        """
        Resolve a release filename to its canonical title, anime id and episode.

        Each step that finds nothing to do passes its input through, so the
        result always carries the best values available.

        Args:
            filename: Release filename, or a ParsedFilename already produced
                      by this pipeline's parser
            identity_lookup: Callable mapping a title to an anime id, or None

        Returns:
            CanonicalEpisode, or None for unusable input
        """
        parsed = filename if isinstance(filename, ParsedFilename) else self.parser.parse(filename)
        if parsed is None:
            return None

        release_group = parsed.release_group or None
        title = self.overrides.apply_overrides(parsed.anime_title, release_group)
        title_overridden = title != parsed.anime_title
        episode = _episode_int(parsed.episode_number)

        mapped = self.overrides.apply_episode_mappings(title, episode)
        episode_mapped = mapped.mapping is not None
        title = mapped.title
        episode = mapped.episode

        result = CanonicalEpisode(
            filename=parsed.filename,
            parsed_title=parsed.anime_title,
            title=title,
            episode=episode,
            release_group=parsed.release_group,
            title_overridden=title_overridden,
            episode_mapped=episode_mapped,
        )

        if identity_lookup is None or not title:
            return result

        anime_id = identity_lookup(title)
        if anime_id is None:
            self.logger.debug("No identity for %r", title)
            return result
        result.anime_id = anime_id

        if self.resolver.store.id_field == "anilist" and not episode_mapped:
            result.title = self.overrides.apply_overrides(parsed.anime_title, release_group, anilist_id=anime_id)
            result.title_overridden = result.title != parsed.anime_title

        if episode is not None:
            resolution = self.resolver.resolve(anime_id, episode)
            if resolution.remapped:
                result.anime_id = resolution.anime_id
                result.episode = resolution.episode
                result.relation_applied = True

        return result

    def refresh_rules(self, client: RuleFeedClient, id_field: str = "anilist") -> bool:
        """
        Fetch the relations table and global overrides and swap them in.

        A feed that fails keeps the rules already loaded.

        Returns:
            True when both feeds were refreshed
        """
        refreshed = True
        try:
            self.resolver.store.replace(client.fetch_relations(id_field))
        except RuleFeedError as exc:
            self.logger.warning("Keeping current relations: %s", exc)
            refreshed = False
        try:
            self.overrides.replace_global_rules(client.fetch_overrides("global"))
        except RuleFeedError as exc:
            self.logger.warning("Keeping current global overrides: %s", exc)
            refreshed = False
        return refreshed


# ============================================================================
# COMMAND LINE
# ============================================================================

def normalize_line(text: str) -> str:
    """NFC-normalize a line and drop invisible marks."""
    normalized = unicodedata.normalize("NFC", text)
    for mark in ("\u200b", "\u200e", "\u200f", "\ufeff"):
        normalized = normalized.replace(mark, "")
    return normalized.replace("\u00a0", " ").strip()


def read_filenames(path: Path) -> List[str]:
    """Read one filename per line, skipping blanks and ``#`` comments."""
    filenames = []
    with open(path, encoding="utf-8", errors="replace") as handle:
        for line in handle:
            line = normalize_line(line)
            if line and not line.startswith("#"):
                filenames.append(line)
    return filenames


def load_identity_map(path: Path) -> IdentityLookup:
    """Identity lookup backed by a JSON object of title -> anime id."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object of title -> id")
    table = {str(title).casefold(): anime_id for title, anime_id in data.items()}
    return lambda title: table.get(title.casefold())


def build_pipeline(args: argparse.Namespace) -> EpisodeResolutionPipeline:
    overrides = TitleOverrides()
    if args.user_overrides:
        overrides.replace_user_rules(OverrideRuleSet.load(args.user_overrides, "user"))
    if args.global_overrides:
        overrides.replace_global_rules(OverrideRuleSet.load(args.global_overrides, "global"))

    store = RelationsStore(id_field=args.id_field)
    if args.relations:
        store.refresh(Path(args.relations).read_text(encoding="utf-8"))

    pipeline = EpisodeResolutionPipeline(FilenameParser(), overrides, RelationResolver(store))
    if args.fetch_rules:
        pipeline.refresh_rules(RuleFeedClient(), args.id_field)
    return pipeline


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse anime release filenames and resolve episodes")
    parser.add_argument("input_file", help="Text file containing filenames (one per line)")
    parser.add_argument("output_file", nargs="?", help="Excel report to write (.xlsx)")
    parser.add_argument("--json", action="store_true", help="Print JSON lines to stdout")
    parser.add_argument("--tokens", action="store_true", help="Include tokens in JSON output")
    parser.add_argument("--user-overrides", type=Path, help="User title-overrides JSON(C) file")
    parser.add_argument("--global-overrides", type=Path, help="Global title-overrides JSON(C) file")
    parser.add_argument("--relations", type=Path, help="Anime relations rule file")
    parser.add_argument("--ids", type=Path, help="JSON object mapping titles to anime ids")
    parser.add_argument("--id-field", default="anilist", choices=("mal", "kitsu", "anilist"),
                        help="Id column of the relations file to index by")
    parser.add_argument("--fetch-rules", action="store_true",
                        help="Download the relations and global overrides feeds before parsing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Process filenames from an input file and write the results."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input_file)
    if not input_path.exists():
        print(f"Error: input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        pipeline = build_pipeline(args)
        identity_lookup = load_identity_map(args.ids) if args.ids else None
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    filenames = read_filenames(input_path)
    logger.info("Parsing %d filenames from %s", len(filenames), input_path)

    records: List[ParsedFilename] = []
    for filename in filenames:
        parsed = pipeline.parser.parse(filename)
        if parsed is None:
            continue
        records.append(parsed)
        if args.json:
            payload = parsed.to_dict()
            if not args.tokens:
                payload.pop("tokens", None)
            canonical = pipeline.resolve_release(parsed, identity_lookup)
            if canonical is not None:
                payload["canonical"] = canonical.to_dict()
            print(json.dumps(payload, ensure_ascii=False))

    if args.output_file:
        output_path = Path(args.output_file)
        if output_path.suffix.lower() != ".xlsx":
            output_path = output_path.with_suffix(".xlsx")
        write_excel_workbook(output_path, [build_parse_report(records)])
        unresolved = sum(1 for record in records if not record.anime_title or not record.episode_number)
        print(f"Wrote {len(records)} rows to {output_path} ({unresolved} without title or episode)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
