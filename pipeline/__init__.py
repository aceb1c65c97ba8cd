"""
Anime filename parsing and episode resolution package.

This package contains the core processing modules:
- dictionary_loader: Cached access to the shipped JSON dictionaries and schemas
- keyword_manager: Keyword table built from the anime dictionary
- tokenizer: Bracket and delimiter aware tokenizing
- token_search: Neighbour lookups over token lists
- elements: Element categories, the element container and the output record
- matchers / number_matchers: Classifier matchers returning claims
- classifier: Ordered matcher passes over the token list
- trimmer: Delimiter trimming and bracket balancing
- title_assembler: Anime title, release group and episode title assembly
- relations / relations_parser: Episode relations table and its text loader
- relation_resolver: Remapping of continuously numbered episodes
- title_overrides: User and global title override rules
- rule_feed: HTTP client for the relations and override feeds
- excel_writer: Excel report of parse results
"""

# Explicit imports make the public API clear and prevent namespace pollution
from .tokenizer import Tokenizer, Token, TokenCategory
from .elements import ElementCategory, Elements, ParsedFilename
from .keyword_manager import Keyword, KeywordManager, get_keyword_manager
from .options import ParserOptions
from .classifier import Classifier
from .title_assembler import TitleAssembler
from .trimmer import Trimmer
from .relations import AnimeIds, EpisodeRelationRule, RelationsTable
from .relations_parser import parse_relations, parse_rule_line
from .relation_resolver import RelationResolver, RelationsStore, Resolution
from .title_overrides import (
    EpisodeMapping,
    EpisodeMappingResult,
    OverrideRuleSet,
    PatternRule,
    TitleOverrides,
    parse_jsonc,
)
from .rule_feed import RuleFeedClient, RuleFeedError
from .excel_writer import ExcelSheetData, build_parse_report, write_excel_workbook

__all__ = [
    'Tokenizer',
    'Token',
    'TokenCategory',
    'ElementCategory',
    'Elements',
    'ParsedFilename',
    'Keyword',
    'KeywordManager',
    'get_keyword_manager',
    'ParserOptions',
    'Classifier',
    'TitleAssembler',
    'Trimmer',
    'AnimeIds',
    'EpisodeRelationRule',
    'RelationsTable',
    'parse_relations',
    'parse_rule_line',
    'RelationResolver',
    'RelationsStore',
    'Resolution',
    'EpisodeMapping',
    'EpisodeMappingResult',
    'OverrideRuleSet',
    'PatternRule',
    'TitleOverrides',
    'parse_jsonc',
    'RuleFeedClient',
    'RuleFeedError',
    'ExcelSheetData',
    'build_parse_report',
    'write_excel_workbook',
]
