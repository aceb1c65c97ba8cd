#!/usr/bin/env python3
"""
Classifier module: labels tokens as filename elements.

Runs an ordered list of matcher passes over a working copy of the token
list. Each pass offers every token to its matcher and applies the claims
it returns; the episode strategies stop at the first one that finds
something. Tokens nobody claims are left for the title assembler.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from .claims import Claim, ClassifierContext, MatcherPass
from .elements import ElementCategory, Elements
from .keyword_manager import KeywordManager, get_keyword_manager
from .matchers import match_checksum, match_keyword, match_leading_release_group
from .number_matchers import EPISODE_STRATEGIES, match_isolated_number
from .options import ParserOptions
from .title_assembler import TitleAssembler
from .tokenizer import Token, TokenCategory, Tokenizer

CLASSIFIER_PASSES: Tuple[MatcherPass, ...] = (
    MatcherPass("file_checksum", match_checksum, reverse=True, first_only=True),
    MatcherPass("keywords", match_keyword),
    MatcherPass("release_group", match_leading_release_group, first_only=True),
    MatcherPass("isolated_numbers", match_isolated_number),
)


class Classifier:
    """Classifier for turning a filename into tokens and elements."""

    def __init__(self, keyword_manager: Optional[KeywordManager] = None,
                 options: Optional[ParserOptions] = None):
        self.keywords = keyword_manager or get_keyword_manager()
        self.options = options or ParserOptions()
        self.tokenizer = Tokenizer(self.keywords, self.options.allowed_delimiters)
        self.assembler = TitleAssembler(self.keywords, self.options)
        self.logger = logging.getLogger(__name__)

    def split_extension(self, filename: str) -> Tuple[str, str]:
        """
        Split a known file extension off a filename.

        Args:
            filename: Raw filename

        Returns:
            Tuple of (stem, extension); extension is empty when none is recognised
        """
        stem, dot, extension = filename.rpartition(".")
        if not dot or not extension or len(extension) > 4 or not extension.isalnum():
            return filename, ""
        if not self.keywords.is_file_extension(extension):
            return filename, ""
        return stem, extension

    def label(self, tokens: Sequence[Token],
              elements: Optional[Elements] = None) -> Tuple[List[Token], Elements]:
        """
        Run every matcher pass over a copy of ``tokens``.

        Args:
            tokens: Tokenizer output; left untouched
            elements: Elements to extend, or None for a fresh container

        Returns:
            Tuple of (labelled tokens, elements)
        """
        ctx = ClassifierContext(
            tokens=list(tokens),
            elements=elements if elements is not None else Elements(),
            keywords=self.keywords,
            options=self.options,
        )

        for matcher_pass in CLASSIFIER_PASSES:
            if matcher_pass.name == "release_group" and not self.options.parse_release_group:
                continue
            self._run_pass(ctx, matcher_pass)

        if (self.options.parse_episode_number and not ctx.batch
                and ElementCategory.EPISODE_NUMBER not in ctx.elements):
            for strategy in EPISODE_STRATEGIES:
                if self._run_pass(ctx, strategy):
                    break

        return ctx.tokens, ctx.elements

    def classify(self, tokens: Sequence[Token]) -> Elements:
        """Classify tokens and return the elements found, without title assembly."""
        return self.label(tokens)[1]

    def parse(self, filename: object) -> Tuple[List[Token], Elements]:
        """
        Full parse: extension split, tokenizing, classification and assembly.

        Args:
            filename: Raw filename

        Returns:
            Tuple of (labelled tokens, elements); both empty for unusable input
        """
        elements = Elements()
        if not isinstance(filename, str) or not filename:
            return [], elements

        stem = filename
        if self.options.parse_file_extension:
            stem, extension = self.split_extension(filename)
            elements.add(ElementCategory.FILE_EXTENSION, extension)

        for ignored in self.options.ignored_strings:
            if ignored:
                stem = stem.replace(ignored, "")
        elements.add(ElementCategory.FILE_NAME, stem)

        tokens = self.tokenizer.tokenize(stem)
        if not tokens:
            return [], elements

        labelled, elements = self.label(tokens, elements)
        self.assembler.assemble(labelled, elements)
        return labelled, elements

    def _run_pass(self, ctx: ClassifierContext, matcher_pass: MatcherPass) -> bool:
        """Offer every token to one matcher; return True when anything was claimed."""
        count = len(ctx.tokens)
        order = range(count - 1, -1, -1) if matcher_pass.reverse else range(count)
        matched = False

        for index in order:
            if ctx.tokens[index].category == TokenCategory.IDENTIFIER:
                continue
            claim = matcher_pass.matcher(ctx, index)
            if claim is None:
                continue

            self._apply(ctx, claim)
            self.logger.debug("%s matched %r at %d: %s", matcher_pass.name,
                              ctx.tokens[index].content, index, claim.entries)
            matched = True
            if matcher_pass.first_only:
                break

        return matched

    @staticmethod
    def _apply(ctx: ClassifierContext, claim: Claim) -> None:
        for category, value in claim.entries:
            ctx.elements.add(category, value)
        if claim.batch:
            ctx.batch = True
            return
        if not claim.identify:
            return
        for index in claim.indices:
            ctx.tokens[index] = replace(ctx.tokens[index], category=TokenCategory.IDENTIFIER)
