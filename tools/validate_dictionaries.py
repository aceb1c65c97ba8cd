#!/usr/bin/env python3
"""Validate the anime dictionary and override documents against JSON Schemas and custom rules."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from jsonschema import Draft7Validator

from pipeline.title_overrides import parse_jsonc

ROOT = Path(__file__).resolve().parent.parent
PACKAGE_DIR = ROOT / "pipeline"
SCHEMA_DIR = PACKAGE_DIR / "schemas"
DICTIONARY_DIR = PACKAGE_DIR / "dictionaries"


def load_json(path: Path):
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_with_schema(data, schema_path: Path, label: str) -> List[str]:
    schema = load_json(schema_path)
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))

    messages = []
    for error in errors:
        location = " > ".join(str(p) for p in error.absolute_path) or "root"
        messages.append(f"{label}: {location}: {error.message}")
    return messages


def check_keywords(dictionary) -> List[str]:
    """Each keyword may appear in one group only; later copies would never be used."""
    errors: List[str] = []
    seen: Dict[str, int] = {}
    for idx, group in enumerate(dictionary.get("keywords") or []):
        for word in group.get("words") or []:
            key = word.upper()
            if key in seen:
                errors.append(f"keywords[{idx}]: duplicate keyword '{word}' also in keywords[{seen[key]}]")
            else:
                seen[key] = idx
    return errors


def check_peek_keywords(dictionary) -> List[str]:
    """Peek keywords are kept whole by the tokenizer, so each needs a keyword entry to classify it."""
    known = {
        word.upper()
        for group in dictionary.get("keywords") or []
        for word in group.get("words") or []
    }
    errors: List[str] = []
    for phrase in dictionary.get("peek_keywords") or []:
        if phrase.upper() not in known:
            errors.append(f"peek_keywords: '{phrase}' has no matching keyword")
    return errors


def check_file_extensions(dictionary) -> List[str]:
    errors: List[str] = []
    seen = set()
    for extension in dictionary.get("file_extensions") or []:
        key = extension.lower()
        if key in seen:
            errors.append(f"file_extensions: duplicate extension '{extension}'")
        seen.add(key)
    return errors


def check_ordinal_seasons(dictionary) -> List[str]:
    errors: List[str] = []
    for word, number in (dictionary.get("ordinal_seasons") or {}).items():
        if word != word.lower():
            errors.append(f"ordinal_seasons: key '{word}' must be lower case")
        if not str(number).isdecimal():
            errors.append(f"ordinal_seasons: '{word}' maps to non-numeric season '{number}'")
    return errors


def check_override_file(path: Path) -> List[str]:
    """Schema-check a title-overrides JSON(C) document."""
    label = path.name
    try:
        document = parse_jsonc(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        return [f"{label}: {exc}"]
    if isinstance(document, dict) and isinstance(document.get("overrides"), dict):
        document = document["overrides"]
    return validate_with_schema(document, SCHEMA_DIR / "title-overrides.schema.json", label)


def main(argv: Optional[Sequence[str]] = None) -> int:
    failures: List[str] = []

    dictionary = load_json(DICTIONARY_DIR / "anime-dictionary.json")
    failures.extend(
        validate_with_schema(dictionary, SCHEMA_DIR / "anime-dictionary.schema.json", "anime-dictionary")
    )
    failures.extend(check_keywords(dictionary))
    failures.extend(check_peek_keywords(dictionary))
    failures.extend(check_file_extensions(dictionary))
    failures.extend(check_ordinal_seasons(dictionary))

    for override_path in (argv if argv is not None else sys.argv[1:]):
        failures.extend(check_override_file(Path(override_path)))

    if failures:
        print("Dictionary validation failed:")
        for failure in failures:
            print(f" - {failure}")
        return 1

    print("All dictionaries validated successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
