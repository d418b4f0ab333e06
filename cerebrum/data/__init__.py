"""
Data package for the Cerebrum content pipeline.

This package handles parsing raw trivia exports, grouping and validating
categories, the on-disk category format, and the test game configuration.
"""

from .data_structure import (
    REQUIRED_TIERS,
    ClueRecord,
    CategoryGroup,
    ValidCategory,
    IndexEntry,
    LoadedCategory,
)
from .record_parser import RecordParser, parse_clue_line, classify_clue_line, parse_value
from .category_format import (
    category_file_name,
    escape_field,
    unescape_field,
    format_category,
    format_index,
    write_categories,
    clear_category_files,
    parse_category_text,
    parse_index_text,
)
from .category_builder import (
    CategoryAggregator,
    CategoryPreprocessor,
    PreprocessSummary,
    is_valid_group,
    select_valid_categories,
    build_coverage_report,
)
from .category_loader import CategoryStore
from .test_game import TestGameConfig, TestCategory, TestClue, select_test_game

__all__ = [
    'REQUIRED_TIERS', 'ClueRecord', 'CategoryGroup', 'ValidCategory', 'IndexEntry',
    'LoadedCategory', 'RecordParser', 'parse_clue_line', 'classify_clue_line',
    'parse_value', 'category_file_name', 'escape_field', 'unescape_field',
    'format_category', 'format_index', 'write_categories', 'clear_category_files',
    'parse_category_text', 'parse_index_text', 'CategoryAggregator',
    'CategoryPreprocessor', 'PreprocessSummary', 'is_valid_group',
    'select_valid_categories', 'build_coverage_report', 'CategoryStore',
    'TestGameConfig', 'TestCategory', 'TestClue', 'select_test_game'
]
