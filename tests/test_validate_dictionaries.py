#!/usr/bin/env python3
"""Tests for the dictionary validation tool."""

import validate_dictionaries


def test_shipped_dictionary_is_valid(capsys):
    assert validate_dictionaries.main([]) == 0
    assert "validated successfully" in capsys.readouterr().out


def test_duplicate_keywords_are_reported():
    dictionary = {"keywords": [{"words": ["BD", "Blu-ray"]}, {"words": ["bd"]}]}
    errors = validate_dictionaries.check_keywords(dictionary)
    assert errors == ["keywords[1]: duplicate keyword 'bd' also in keywords[0]"]


def test_peek_keyword_without_entry():
    dictionary = {"keywords": [{"words": ["Web-DL"]}], "peek_keywords": ["WEB-DL", "Web Rip"]}
    assert validate_dictionaries.check_peek_keywords(dictionary) == [
        "peek_keywords: 'Web Rip' has no matching keyword"
    ]


def test_duplicate_extensions():
    errors = validate_dictionaries.check_file_extensions({"file_extensions": ["mkv", "MKV", "mp4"]})
    assert len(errors) == 1


def test_ordinal_seasons():
    errors = validate_dictionaries.check_ordinal_seasons({"ordinal_seasons": {"2nd": 2, "Third": "x"}})
    assert len(errors) == 2


def test_override_file_check(tmp_path):
    good = tmp_path / "good.jsonc"
    good.write_text('{"overrides": {"exact_match": {"A": "B"}, // note\n}}', encoding="utf-8")
    bad = tmp_path / "bad.jsonc"
    bad.write_text('{"exact_match": {"A": 5}}', encoding="utf-8")
    broken = tmp_path / "broken.jsonc"
    broken.write_text("{not json", encoding="utf-8")

    assert validate_dictionaries.check_override_file(good) == []
    assert validate_dictionaries.check_override_file(bad)[0].startswith("bad.jsonc: exact_match > A")
    assert validate_dictionaries.check_override_file(broken)[0].startswith("broken.jsonc: JSONC parsing failed")


def test_main_reports_override_failures(tmp_path, capsys):
    bad = tmp_path / "bad.jsonc"
    bad.write_text('{"exact_match": []}', encoding="utf-8")

    assert validate_dictionaries.main([str(bad)]) == 1
    assert "Dictionary validation failed" in capsys.readouterr().out
