#!/usr/bin/env python3
"""
Tests for EpisodeResolutionPipeline and the moeparse command line.
"""

import json
from unittest.mock import Mock, patch

import pytest
from openpyxl import load_workbook

import moeparse
from moeparse import EpisodeResolutionPipeline, FilenameParser, normalize_line
from pipeline.relation_resolver import RelationResolver
from pipeline.relations_parser import parse_relations
from pipeline.rule_feed import RuleFeedError
from pipeline.title_overrides import OverrideRuleSet, TitleOverrides

RELATIONS = """::meta
- version: 1.3.0

::rules
# Fate/Zero -> ~ 2nd Season
- 10087|6028|10087:14-25 -> 11741|7658|11741:1-12!
"""

OVERRIDES = {
    "exact_match": {"Kimetsu no Yaiba": "Demon Slayer"},
    "episode_mappings": [
        {
            "source_title": "Demon Slayer",
            "source_episode_start": 27,
            "source_episode_end": 44,
            "dest_title": "Demon Slayer Entertainment District Arc",
            "dest_episode_start": 1,
        }
    ],
}

IDS = {"Fate Zero": 10087, "Demon Slayer": 101922}


@pytest.fixture
def pipeline():
    overrides = TitleOverrides(global_=OverrideRuleSet.from_document(OVERRIDES, "global"))
    resolver = RelationResolver(parse_relations(RELATIONS))
    return EpisodeResolutionPipeline(FilenameParser(), overrides, resolver)


def lookup(title):
    return IDS.get(title)


def test_continuous_numbering_is_resolved(pipeline):
    result = pipeline.resolve_release("[SubsPlease] Fate Zero - 14 (1080p) [ABCD1234].mkv", lookup)

    assert result.parsed_title == "Fate Zero"
    assert result.title == "Fate Zero"
    assert (result.anime_id, result.episode) == (11741, 1)
    assert result.relation_applied is True
    assert result.title_overridden is False
    assert result.release_group == "SubsPlease"


def test_episode_inside_first_season_is_kept(pipeline):
    result = pipeline.resolve_release("[SubsPlease] Fate Zero - 13 (1080p).mkv", lookup)

    assert (result.anime_id, result.episode) == (10087, 13)
    assert result.relation_applied is False


def test_title_override_then_lookup(pipeline):
    result = pipeline.resolve_release("[SubsPlease] Kimetsu no Yaiba - 01 (1080p) [B1A4C5D6].mkv", lookup)

    assert result.parsed_title == "Kimetsu no Yaiba"
    assert result.title == "Demon Slayer"
    assert result.title_overridden is True
    assert result.anime_id == 101922
    assert result.episode == 1


def test_episode_mapping_moves_title(pipeline):
    result = pipeline.resolve_release("[SubsPlease] Kimetsu no Yaiba - 28 (1080p).mkv")

    assert result.title == "Demon Slayer Entertainment District Arc"
    assert result.episode == 2
    assert result.episode_mapped is True
    assert result.anime_id is None


def test_without_identity_lookup(pipeline):
    result = pipeline.resolve_release("[SubsPlease] Fate Zero - 14 (1080p).mkv")

    assert result.anime_id is None
    assert result.episode == 14
    assert result.relation_applied is False


def test_unknown_title_keeps_parsed_values(pipeline):
    result = pipeline.resolve_release("[Group] Unknown Show - 05 [720p].mkv", lookup)

    assert result.title == "Unknown Show"
    assert result.anime_id is None
    assert result.episode == 5


@pytest.mark.parametrize("filename", [None, "", "   ", 42])
def test_unusable_input(pipeline, filename):
    assert pipeline.resolve_release(filename, lookup) is None


def test_refresh_rules_keeps_relations_on_failure(pipeline):
    client = Mock()
    client.fetch_relations.side_effect = RuleFeedError("feed down")
    client.fetch_overrides.return_value = OverrideRuleSet.from_document(
        {"exact_match": {"Fate Zero": "Fate/Zero"}}, "global"
    )
    before = pipeline.resolver.store.table

    assert pipeline.refresh_rules(client) is False
    assert pipeline.resolver.store.table is before
    assert pipeline.overrides.apply_overrides("Fate Zero") == "Fate/Zero"
    client.fetch_relations.assert_called_once_with("anilist")


def test_refresh_rules_swaps_both(pipeline):
    client = Mock()
    new_table = parse_relations("::rules\n- 1|2|3:13-24 -> 4|5|6:1-12\n")
    client.fetch_relations.return_value = new_table
    client.fetch_overrides.return_value = OverrideRuleSet(name="global")

    assert pipeline.refresh_rules(client, "mal") is True
    assert pipeline.resolver.store.table is new_table
    assert pipeline.overrides.apply_overrides("Kimetsu no Yaiba") == "Kimetsu no Yaiba"


def test_canonical_to_dict(pipeline):
    result = pipeline.resolve_release("[SubsPlease] Fate Zero - 14 (1080p).mkv", lookup)
    data = result.to_dict()
    assert data["anime_id"] == 11741
    assert data["filename"] == "[SubsPlease] Fate Zero - 14 (1080p).mkv"


@pytest.mark.parametrize("filename", ["Title - \u2460 [1080p].mkv", "[Group] Title [\u00b2].mkv"])
def test_non_decimal_digits_do_not_break_resolution(pipeline, filename):
    result = pipeline.resolve_release(filename, lookup)
    assert result is not None
    assert result.episode is None


def test_resolve_release_accepts_parsed_record(pipeline):
    parsed = pipeline.parser.parse("[SubsPlease] Fate Zero - 14 (1080p).mkv")
    with patch.object(pipeline.parser, "parse", side_effect=AssertionError("parsed twice")):
        result = pipeline.resolve_release(parsed, lookup)
    assert (result.anime_id, result.episode) == (11741, 1)


def test_anilist_override_uses_looked_up_id():
    global_rules = OverrideRuleSet.from_document(
        {"anilist_specific": {"10087": {"override_title": "Fate/Zero"}}}, "global"
    )
    pipeline = EpisodeResolutionPipeline(
        FilenameParser(), TitleOverrides(global_=global_rules), RelationResolver(parse_relations(RELATIONS))
    )

    result = pipeline.resolve_release("[SubsPlease] Fate Zero - 14 (1080p).mkv", lookup)

    assert result.title == "Fate/Zero"
    assert result.title_overridden is True
    assert (result.anime_id, result.episode) == (11741, 1)


# ---------------------------------------------------------------------------
# Duplicate detection helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def parser():
    return FilenameParser()


def test_normalize_builds_dedup_key(parser):
    first = parser.normalize("[SubsPlease] Kimetsu no Yaiba - 01 (1080p) [B1A4C5D6].mkv")
    second = parser.normalize("[SubsPlease] Kimetsu no Yaiba - 01 (720p).mp4")

    assert first == "kimetsu no yaiba ep01 [subsplease]"
    assert first == second


def test_normalize_pads_single_digit_episodes(parser):
    assert parser.normalize("Title - 5 [720p].mkv") == "title ep05"


@pytest.mark.parametrize("value, expected", [(None, ""), ("", ""), (7, ""), ("   ", "")])
def test_normalize_unusable_input(parser, value, expected):
    assert parser.normalize(value) == expected


@pytest.mark.parametrize("filename, expected", [
    ("[SubsPlease] Kimetsu no Yaiba - 01 (1080p).mkv", True),
    ("[SubsPlease] Kimetsu no Yaiba - 01 (1080p).MP4", True),
    ("[SubsPlease] Kimetsu no Yaiba - 01 (1080p).ass", False),
    ("[SubsPlease] Kimetsu no Yaiba - 01 (1080p).torrent", False),
    ("(1080p).mkv", False),
    (None, False),
])
def test_is_anime_file(parser, filename, expected):
    assert parser.is_anime_file(filename) is expected

# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def test_normalize_line():
    assert normalize_line("\ufeff[Group]\u00a0Title\u200b - 01.mkv\n") == "[Group] Title - 01.mkv"


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "releases.txt"
    path.write_text(
        "# comment line\n"
        "[SubsPlease] Fate Zero - 14 (1080p) [ABCD1234].mkv\n"
        "\n"
        "random_file_without_proper_format.txt\n",
        encoding="utf-8",
    )
    return path


def test_main_json_output(tmp_path, input_file, capsys):
    relations = tmp_path / "relations.txt"
    relations.write_text(RELATIONS, encoding="utf-8")
    ids = tmp_path / "ids.json"
    ids.write_text(json.dumps(IDS), encoding="utf-8")

    exit_code = moeparse.main([str(input_file), "--json", "--relations", str(relations), "--ids", str(ids)])

    assert exit_code == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert len(lines) == 2
    assert lines[0]["anime_title"] == "Fate Zero"
    assert "tokens" not in lines[0]
    assert lines[0]["canonical"]["anime_id"] == 11741
    assert lines[0]["canonical"]["episode"] == 1


def test_main_json_with_tokens(input_file, capsys):
    assert moeparse.main([str(input_file), "--json", "--tokens"]) == 0
    first = json.loads(capsys.readouterr().out.splitlines()[0])
    assert first["tokens"]


def test_main_writes_excel(tmp_path, input_file, capsys):
    output = tmp_path / "results"

    assert moeparse.main([str(input_file), str(output)]) == 0

    written = tmp_path / "results.xlsx"
    assert written.exists()
    assert "Wrote 2 rows" in capsys.readouterr().out
    wb = load_workbook(written)
    try:
        ws = wb.active
        assert ws.cell(row=2, column=1).value == "[SubsPlease] Fate Zero - 14 (1080p) [ABCD1234].mkv"
        assert ws.max_row == 3
    finally:
        wb.close()


def test_main_missing_input(tmp_path, capsys):
    assert moeparse.main([str(tmp_path / "nope.txt")]) == 1
    assert "not found" in capsys.readouterr().err


def test_main_rejects_bad_identity_map(tmp_path, input_file, capsys):
    ids = tmp_path / "ids.json"
    ids.write_text("[1, 2]", encoding="utf-8")

    assert moeparse.main([str(input_file), "--ids", str(ids)]) == 1
    assert "expected a JSON object" in capsys.readouterr().err
