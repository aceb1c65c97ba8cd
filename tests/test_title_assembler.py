#!/usr/bin/env python3
"""
Title assembly and trimming behavior.
"""

import pytest

from pipeline.classifier import Classifier
from pipeline.elements import ElementCategory, Elements
from pipeline.title_assembler import TitleAssembler
from pipeline.trimmer import Trimmer


@pytest.fixture
def classifier():
    return Classifier()


def parse(classifier, filename):
    return classifier.parse(filename)[1]


def test_episode_title_after_number(classifier):
    elements = parse(classifier, "[Group] Title - 05 - The Beginning [720p].mkv")
    assert elements.get(ElementCategory.ANIME_TITLE) == "Title"
    assert elements.get(ElementCategory.EPISODE_NUMBER) == "05"
    assert elements.get(ElementCategory.EPISODE_TITLE) == "The Beginning"


def test_title_keeps_round_bracket_suffix(classifier):
    elements = parse(classifier, "Title (TV) - 03 [480p].mkv")
    assert elements.get(ElementCategory.ANIME_TITLE) == "Title (TV)"


def test_title_drops_trailing_square_groups(classifier):
    elements = parse(classifier, "Title [Extra] [1080p].mkv")
    assert elements.get(ElementCategory.ANIME_TITLE) == "Title"


def test_release_group_recovered_from_trailing_group(classifier):
    elements = parse(classifier, "Title - 04 [GroupName].mkv")
    assert elements.get(ElementCategory.RELEASE_GROUP) == "GroupName"
    assert elements.get(ElementCategory.ANIME_TITLE) == "Title"


def test_non_latin_bracket_is_skipped_for_title(classifier):
    elements = parse(classifier, "[Group][鬼滅の刃][Kimetsu no Yaiba][01].mkv")
    assert elements.get(ElementCategory.RELEASE_GROUP) == "Group"
    assert elements.get(ElementCategory.ANIME_TITLE) == "Kimetsu no Yaiba"


def test_anime_type_in_episode_title_is_dropped():
    elements = Elements()
    elements.add(ElementCategory.ANIME_TYPE, "Movie")
    elements.add(ElementCategory.EPISODE_TITLE, "Movie")

    TitleAssembler()._validate(elements)

    assert ElementCategory.EPISODE_TITLE not in elements
    assert elements.get(ElementCategory.ANIME_TYPE) == "Movie"


def test_anime_type_inside_longer_episode_title():
    elements = Elements()
    elements.add(ElementCategory.ANIME_TYPE, "Movie")
    elements.add(ElementCategory.EPISODE_TITLE, "The Movie Returns")

    TitleAssembler()._validate(elements)

    assert elements.get(ElementCategory.EPISODE_TITLE) == "The Movie Returns"
    assert ElementCategory.ANIME_TYPE not in elements


def test_assemble_marks_title_tokens(classifier):
    tokens, _ = classifier.parse("[Group] Title - 05.mkv")
    title = next(token for token in tokens if token.content == "Title")
    assert title.category.value == "identifier"


@pytest.mark.parametrize("text, expected", [
    (" - Kimetsu no Yaiba - ", "Kimetsu no Yaiba"),
    ("- - -", ""),
    ("__Title__", "Title"),
    ("Title", "Title"),
    ("", ""),
])
def test_trim(text, expected):
    trimmer = Trimmer([" ", "-", "_"])
    assert trimmer.trim(text) == expected


def test_trimmer_defaults_to_dictionary():
    trimmer = Trimmer()
    assert "-" in trimmer.trimming_strings
    assert trimmer.trim("\u2013 Title \u2013") == "Title"


def test_balance_brackets():
    assert Trimmer.balance_brackets("Title (TV") == "Title TV"
    assert Trimmer.balance_brackets("Title (TV)") == "Title (TV)"
    assert Trimmer.balance_brackets("Title ]x[") == "Title x"


def test_clean_collapses_spaces():
    trimmer = Trimmer([" ", "-"])
    assert trimmer.clean("  Title   Name (TV -") == "Title Name TV"
