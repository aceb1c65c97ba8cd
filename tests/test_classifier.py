#!/usr/bin/env python3
"""
End-to-end tests for filename classification.

Each case runs the full parse: extension split, tokenizing, matcher
passes, episode strategies and title assembly.
"""

import json

import pytest

from moeparse import FilenameParser
from pipeline.classifier import Classifier
from pipeline.elements import ElementCategory
from pipeline.options import ParserOptions
from pipeline.tokenizer import TokenCategory


@pytest.fixture
def parser():
    """Fixture providing a FilenameParser instance."""
    return FilenameParser()


def test_subsplease_release(parser):
    result = parser.parse("[SubsPlease] Kimetsu no Yaiba - 01 (1080p) [B1A4C5D6].mkv")

    assert result.filename == "[SubsPlease] Kimetsu no Yaiba - 01 (1080p) [B1A4C5D6].mkv"
    assert result.release_group == "SubsPlease"
    assert result.anime_title == "Kimetsu no Yaiba"
    assert result.episode_number == "01"
    assert result.video_resolution == "1080p"
    assert result.file_checksum == "B1A4C5D6"
    assert result.file_extension == "mkv"
    assert result.episode_title == ""


def test_batch_range_is_not_an_episode(parser):
    result = parser.parse("[Group] Anime Title - 01-12 (1080p) [Batch].mkv")

    assert result.episode_number == ""
    assert result.anime_title == "Anime Title - 01-12"
    assert result.release_group == "Group"
    assert result.release_information == "Batch"
    assert result.video_resolution == "1080p"


def test_scene_style_season_episode(parser):
    result = parser.parse("Show.Name.S01E17.1080p.WEB-DL.mkv")

    assert result.anime_title == "Show Name"
    assert result.anime_season == "01"
    assert result.episode_number == "17"
    assert result.video_resolution == "1080p"
    assert result.source == "WEB-DL"
    assert result.release_group == ""


def test_episode_prefix(parser):
    result = parser.parse("[Group] Title EP01 [720p].mkv")
    assert result.anime_title == "Title"
    assert result.episode_number == "01"
    assert result.video_resolution == "720p"


def test_anime_type_with_number(parser):
    result = parser.parse("[Group] Title OVA2 [480p].mkv")
    assert result.anime_title == "Title"
    assert result.anime_type == "OVA"
    assert result.episode_number == "2"


def test_bracketed_year(parser):
    result = parser.parse("Title (2019) - 05 [1080p].mkv")
    assert result.anime_title == "Title"
    assert result.anime_year == "2019"
    assert result.episode_number == "05"
    assert result.release_group == ""


def test_episode_of_total(parser):
    result = parser.parse("Title 01 of 24 [720p].mkv")
    assert result.anime_title == "Title"
    assert result.episode_number == "01"


def test_release_version(parser):
    result = parser.parse("[Group] Title - 03v2 [1080p].mkv")
    assert result.anime_title == "Title"
    assert result.episode_number == "03"
    assert result.release_version == "2"
    assert result.episode_title == ""


def test_ordinal_season(parser):
    result = parser.parse("[Group] Title 2nd Season - 05 [720p].mkv")
    assert result.anime_title == "Title"
    assert result.anime_season == "2"
    assert result.episode_number == "05"


def test_all_enclosed_name(parser):
    result = parser.parse("[Group][Title][01].mkv")
    assert result.release_group == "Group"
    assert result.anime_title == "Title"
    assert result.episode_number == "01"


def test_abbreviated_title(parser):
    result = parser.parse("[Group] Dr. Stone - 05 [1080p].mkv")
    assert result.anime_title == "Dr. Stone"
    assert result.episode_number == "05"


def test_multi_episode_release(parser):
    elements = parser.classify("Title - 01+02 [720p].mkv")
    assert elements.get_all(ElementCategory.EPISODE_NUMBER) == ["01", "02"]
    assert elements.get(ElementCategory.ANIME_TITLE) == "Title"


def test_resolution_dimensions(parser):
    result = parser.parse("Title - 01 [1920x1080].mkv")
    assert result.video_resolution == "1920x1080"


def test_every_resolution_token_is_recorded(parser):
    elements = parser.classify("[Group] Title - 01 [720p][1080p].mkv")
    assert elements.get_all(ElementCategory.VIDEO_RESOLUTION) == ["720p", "1080p"]
    assert elements.get(ElementCategory.ANIME_TITLE) == "Title"
    assert parser.parse("[Group] Title - 01 [720p][1080p].mkv").video_resolution == "720p"


def test_circled_digit_is_not_an_episode(parser):
    result = parser.parse("Title - \u2460 [1080p].mkv")
    assert result.episode_number == ""
    assert result.video_resolution == "1080p"


@pytest.mark.parametrize("filename, expected", [
    ("Title - 01 [720p].mkv", "720p"),
    ("[Group] Some Show 480p.mp4", "480p"),
    ("Show.Name.S02E03.2160p.mkv", "2160p"),
])
def test_resolution_token_is_extracted(parser, filename, expected):
    result = parser.parse(filename)
    assert result.video_resolution == expected


def test_unknown_extension_stays_in_title(parser):
    result = parser.parse("Title - 05.torrent")
    assert result.file_extension == ""


def test_tokens_are_recorded(parser):
    result = parser.parse("[Group] Title - 01.mkv")
    assert result.tokens[0] == {"category": "bracket", "content": "[", "enclosed": False}
    assert all(token["category"] != "unknown" for token in result.tokens
               if token["content"] in ("Group", "Title", "01"))


@pytest.mark.parametrize("value", [None, "", 12, b"[Group] Title - 01.mkv"])
def test_invalid_input_returns_none(parser, value):
    assert parser.parse(value) is None
    assert len(parser.classify(value)) == 0


def test_blank_filename_returns_none(parser):
    assert parser.parse("   ") is None


@pytest.mark.parametrize("junk", [
    "....", "[]", "()[]{}", "-", "___ ---", "[[[", "v2", "#",
    "[Group] Title [\u00b2].mkv", "Title - \u2460 [1080p].mkv", "Title \u00b3 \u2461.mkv", "(\u00b2)",
])
def test_junk_never_raises(parser, junk):
    result = parser.parse(junk)
    assert result is not None
    assert result.filename == junk


def test_options_disable_stages():
    options = ParserOptions(parse_release_group=False, parse_file_extension=False)
    parser = FilenameParser(options=options)
    result = parser.parse("[SubsPlease] Kimetsu no Yaiba - 01 (1080p).mkv")
    assert result.release_group == ""
    assert result.file_extension == ""


def test_episode_number_parsing_can_be_disabled():
    parser = FilenameParser(options=ParserOptions(parse_episode_number=False))
    result = parser.parse("Title - 05 [720p].mkv")
    assert result.episode_number == ""


def test_ignored_strings_are_removed():
    parser = FilenameParser(options=ParserOptions(ignored_strings=("[Preview]",)))
    result = parser.parse("[Group] Title [Preview] - 05.mkv")
    assert result.anime_title == "Title"
    assert result.episode_number == "05"


def test_classifier_label_leaves_input_untouched():
    classifier = Classifier()
    tokens = classifier.tokenizer.tokenize("[Group] Title - 05 [720p]")
    labelled, elements = classifier.label(tokens)

    assert all(token.category != TokenCategory.IDENTIFIER for token in tokens)
    assert any(token.category == TokenCategory.IDENTIFIER for token in labelled)
    assert elements.get(ElementCategory.VIDEO_RESOLUTION) == "720p"
    assert ElementCategory.ANIME_TITLE not in elements


def test_split_extension():
    classifier = Classifier()
    assert classifier.split_extension("Title.mkv") == ("Title", "mkv")
    assert classifier.split_extension("Title.5.1") == ("Title.5.1", "")
    assert classifier.split_extension("Title") == ("Title", "")


def test_result_serialisation(parser):
    result = parser.parse("[SubsPlease] Kimetsu no Yaiba - 01 (1080p).mkv")
    data = json.loads(result.to_json())

    assert data["anime_title"] == "Kimetsu no Yaiba"
    assert data["video_resolution"] == "1080p"
    assert data["tokens"][0] == result.tokens[0]
