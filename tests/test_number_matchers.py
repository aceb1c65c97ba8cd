#!/usr/bin/env python3
"""Tests for episode, volume and numeric disambiguation helpers."""

import pytest

from pipeline.elements import ElementCategory
from pipeline.keyword_manager import get_keyword_manager
from pipeline.number_matchers import (
    EPISODE_NUMBER_MAX,
    is_crc32,
    is_mostly_latin,
    is_resolution,
    parse_episode_word,
    parse_volume_word,
    to_int,
)

EPISODE = ElementCategory.EPISODE_NUMBER
VERSION = ElementCategory.RELEASE_VERSION
SEASON = ElementCategory.ANIME_SEASON


@pytest.fixture
def keywords():
    return get_keyword_manager()


@pytest.mark.parametrize("word, entries", [
    ("03v2", ((EPISODE, "03"), (VERSION, "2"))),
    ("01+02", ((EPISODE, "01"), (EPISODE, "02"))),
    ("01&02", ((EPISODE, "01"), (EPISODE, "02"))),
    ("S01E17", ((SEASON, "01"), (EPISODE, "17"))),
    ("2x05", ((SEASON, "2"), (EPISODE, "05"))),
    ("07.5", ((EPISODE, "07.5"),)),
    ("4a", ((EPISODE, "4a"),)),
    ("#12", ((EPISODE, "12"),)),
    ("#12v3", ((EPISODE, "12"), (VERSION, "3"))),
    ("01話", ((EPISODE, "01"),)),
    ("OVA2", ((ElementCategory.ANIME_TYPE, "OVA"), (EPISODE, "2"))),
])
def test_episode_words(keywords, word, entries):
    claim = parse_episode_word(word, keywords)
    assert claim is not None
    assert claim.entries == entries
    assert claim.batch is False


@pytest.mark.parametrize("word", ["01-12", "01~12", "#01-12"])
def test_ranges_are_batches(keywords, word):
    claim = parse_episode_word(word, keywords)
    assert claim.batch is True
    assert claim.entries == ()
    assert claim.identify is False


def test_season_range_keeps_season(keywords):
    claim = parse_episode_word("S01E01-12", keywords)
    assert claim.batch is True
    assert claim.entries == ((SEASON, "01"),)


@pytest.mark.parametrize("word", ["", "05", "1080p", "Title", "12-01", "abc1"])
def test_not_episode_words(keywords, word):
    assert parse_episode_word(word, keywords) is None


def test_episode_upper_bound(keywords):
    assert parse_episode_word(f"OVA{EPISODE_NUMBER_MAX}", keywords) is not None
    assert parse_episode_word(f"OVA{EPISODE_NUMBER_MAX + 1}", keywords) is None


def test_volume_words():
    assert parse_volume_word("02v2").entries == (
        (ElementCategory.VOLUME_NUMBER, "02"), (VERSION, "2"))
    assert parse_volume_word("01-03").entries == (
        (ElementCategory.VOLUME_NUMBER, "01"), (ElementCategory.VOLUME_NUMBER, "03"))
    assert parse_volume_word("05") is None
    assert parse_volume_word("03-01") is None


def test_helpers():
    assert to_int("07.5") == 7
    assert to_int("") == 0
    assert is_resolution("1080p")
    assert is_resolution("1920x1080")
    assert not is_resolution("1080")
    assert is_crc32("B1A4C5D6")
    assert not is_crc32("B1A4C5DZ")
    assert is_mostly_latin("Kimetsu no Yaiba")
    assert not is_mostly_latin("鬼滅の刃")
    assert not is_mostly_latin("")
