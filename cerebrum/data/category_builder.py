"""
Category Builder for the Cerebrum content pipeline

This module turns raw tab-separated trivia exports into self-contained
category files plus an index, ready to be bundled with the game.

Key Features:
- Line-level parsing with per-reason rejection counts
- Grouping by normalized category name across all source files
- Tier coverage validation (one clue for each required value)
- Stable identifier assignment by first-seen order
- Optional per-group coverage report for diagnostics

Architecture:
- CategoryAggregator: builds the key -> CategoryGroup mapping
- is_valid_group / select_valid_categories: tier coverage validation
- CategoryPreprocessor: orchestrates files -> groups -> files + index
- Configurable parameters from cerebrum_config.txt
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd
import psutil

from ..audio.errors import ConfigurationError
from ..utils.config_loader import get_config
from ..utils.text_utils import normalize_category_key
from .category_format import clear_category_files, write_categories
from .data_structure import REQUIRED_TIERS, CategoryGroup, ClueRecord, ValidCategory
from .record_parser import RecordParser

logger = logging.getLogger(__name__)

SOURCE_FILE_PATTERN = "*.tsv"
REPORT_COLUMNS = [
    "key",
    "display_name",
    "record_count",
    "tiers_present",
    "missing_tiers",
    "is_valid",
]


class CategoryAggregator:
    """
    Groups clue records by normalized category key.

    Records with an empty or whitespace-only category are dropped. Groups
    keep records in insertion order and remember the display name and
    global sequence number of their first record. Duplicate records are
    kept as-is.
    """

    def __init__(self):
        self.groups: Dict[str, CategoryGroup] = {}
        self.total_records = 0
        self.empty_category_drops = 0

    def add(self, record: ClueRecord) -> bool:
        """
        Add one record to its group.

        Returns:
            True if the record was grouped, False if it was dropped
        """
        key = normalize_category_key(record.category)
        if not key:
            self.empty_category_drops += 1
            return False

        group = self.groups.get(key)
        if group is None:
            group = CategoryGroup(
                key=key,
                display_name=record.category,
                first_seen=self.total_records,
            )
            self.groups[key] = group

        group.records.append(record)
        self.total_records += 1
        return True

    def add_all(self, records: Iterable[ClueRecord]) -> int:
        """Add many records; returns how many were grouped."""
        return sum(1 for record in records if self.add(record))


def missing_tiers(
    group: CategoryGroup, required_tiers: Sequence[int] = REQUIRED_TIERS
) -> List[int]:
    """Return the required tiers with no record in the group."""
    present = {record.value for record in group.records}
    return [tier for tier in required_tiers if tier not in present]


def is_valid_group(
    group: CategoryGroup, required_tiers: Sequence[int] = REQUIRED_TIERS
) -> bool:
    """
    Check tier coverage.

    A group is valid when the set of values across its records is a
    superset of the required tiers. Counts and record order do not matter.
    """
    return not missing_tiers(group, required_tiers)


def to_valid_category(
    group: CategoryGroup, required_tiers: Sequence[int] = REQUIRED_TIERS
) -> ValidCategory:
    """
    Select one record per tier (first in insertion order).

    Raises:
        ValueError: If the group does not cover every required tier
    """
    missing = missing_tiers(group, required_tiers)
    if missing:
        raise ValueError(f"Category '{group.display_name}' is missing tiers {missing}")

    clues = tuple((tier, group.first_record_for(tier)) for tier in required_tiers)
    return ValidCategory(
        key=group.key,
        display_name=group.display_name,
        clues=clues,
        first_seen=group.first_seen,
    )


def select_valid_categories(
    groups: Dict[str, CategoryGroup],
    required_tiers: Sequence[int] = REQUIRED_TIERS,
) -> List[ValidCategory]:
    """
    Filter groups to valid categories, ordered by first-seen sequence.

    Identifiers are later assigned in this order, so the same inputs read in
    the same order always produce the same identifiers.
    """
    valid = [
        to_valid_category(group, required_tiers)
        for group in groups.values()
        if is_valid_group(group, required_tiers)
    ]
    valid.sort(key=lambda category: category.first_seen)
    return valid


def build_coverage_report(
    groups: Dict[str, CategoryGroup],
    required_tiers: Sequence[int] = REQUIRED_TIERS,
) -> pd.DataFrame:
    """Build a per-group tier coverage table for diagnostics."""
    rows = []
    for group in sorted(groups.values(), key=lambda g: g.first_seen):
        missing = missing_tiers(group, required_tiers)
        rows.append(
            {
                "key": group.key,
                "display_name": group.display_name,
                "record_count": len(group.records),
                "tiers_present": ",".join(str(v) for v in group.tiers_present()),
                "missing_tiers": ",".join(str(v) for v in missing),
                "is_valid": not missing,
            }
        )

    if not rows:
        return pd.DataFrame(columns=REPORT_COLUMNS)
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


@dataclass
class PreprocessSummary:
    """Outcome of one preprocessing run."""

    files_read: int = 0
    lines_read: int = 0
    records_parsed: int = 0
    rejections: Dict[str, int] = field(default_factory=dict)
    empty_category_drops: int = 0
    group_count: int = 0
    valid_count: int = 0
    category_files: List[Path] = field(default_factory=list)
    index_file: Optional[Path] = None
    report_file: Optional[Path] = None

    @property
    def rejected_count(self) -> int:
        return sum(self.rejections.values())


class CategoryPreprocessor:
    """
    Main orchestrator for turning TSV exports into category files.

    Reads every source file, groups and validates the records, clears stale
    category files and writes the new set together with the index.
    """

    def __init__(
        self,
        source_dir: Optional[Union[str, Path]] = None,
        output_dir: Optional[Union[str, Path]] = None,
        index_file: Optional[Union[str, Path]] = None,
        report_file: Optional[Union[str, Path]] = None,
        required_tiers: Optional[Sequence[int]] = None,
    ):
        self.config = get_config()
        preprocess_config = self.config.get_preprocess_config()

        self.source_dir = Path(source_dir or preprocess_config["CLUES_SOURCE_DIR"])
        self.output_dir = Path(output_dir or preprocess_config["CATEGORIES_OUTPUT_DIR"])
        self.index_file = Path(index_file or preprocess_config["CATEGORY_INDEX_FILE"])
        report = report_file if report_file is not None else preprocess_config["CATEGORY_REPORT_FILE"]
        self.report_file = Path(report) if report else None
        self.required_tiers = tuple(
            required_tiers or preprocess_config["REQUIRED_TIERS"] or REQUIRED_TIERS
        )

        self.lines_read = 0
        self.initial_memory = self._get_memory_usage()

    def _get_memory_usage(self) -> Dict[str, float]:
        """Get current memory usage statistics."""
        try:
            process = psutil.Process()
            memory_info = process.memory_info()
            return {
                "rss_mb": memory_info.rss / 1024 / 1024,
                "vms_mb": memory_info.vms / 1024 / 1024,
                "percent": process.memory_percent(),
            }
        except psutil.Error as e:
            logger.debug(f"Failed to get memory usage: {e}")
            return {"rss_mb": 0, "vms_mb": 0, "percent": 0}

    def _log_memory_usage(self, context: str):
        """Log current memory usage with context."""
        current_memory = self._get_memory_usage()
        memory_change = current_memory["rss_mb"] - self.initial_memory["rss_mb"]

        logger.info(
            f"MEMORY_USAGE ({context}): "
            f"RSS={current_memory['rss_mb']:.1f}MB "
            f"({memory_change:+.1f}MB), "
            f"VMS={current_memory['vms_mb']:.1f}MB, "
            f"Percent={current_memory['percent']:.1f}%"
        )

        return current_memory

    def find_source_files(self) -> List[Path]:
        """
        List the TSV files to ingest, sorted by name.

        Raises:
            ConfigurationError: If the source directory does not exist
        """
        if not self.source_dir.is_dir():
            raise ConfigurationError(
                f"Clue source directory not found: {self.source_dir}"
            )
        files = sorted(self.source_dir.glob(SOURCE_FILE_PATTERN))
        logger.info(f"Found {len(files)} TSV files in {self.source_dir}")
        return files

    def ingest(
        self,
        files: Iterable[Path],
        parser: Optional[RecordParser] = None,
        aggregator: Optional[CategoryAggregator] = None,
    ) -> CategoryAggregator:
        """
        Parse and group every data line of the given files.

        The first line of each file is a header and is skipped, as are blank
        lines.
        """
        parser = parser or RecordParser()
        aggregator = aggregator or CategoryAggregator()

        for path in files:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                next(f, None)
                for line in f:
                    if not line.strip():
                        continue
                    self.lines_read += 1
                    record = parser.parse(line)
                    if record is not None:
                        aggregator.add(record)
            logger.debug(f"Ingested {path.name}: {aggregator.total_records} records so far")

        return aggregator

    def run(self, clear_existing: bool = True) -> PreprocessSummary:
        """
        Run the full preprocessing pass.

        Args:
            clear_existing: Delete stale category files before writing

        Returns:
            PreprocessSummary describing the run
        """
        logger.info(f"PREPROCESS_START: source={self.source_dir} output={self.output_dir}")
        files = self.find_source_files()

        parser = RecordParser()
        self.lines_read = 0
        aggregator = self.ingest(files, parser=parser)

        self._log_memory_usage("after ingestion")
        logger.info(
            f"Parsed {aggregator.total_records} clues into "
            f"{len(aggregator.groups)} unique categories"
        )

        valid = select_valid_categories(aggregator.groups, self.required_tiers)
        logger.info(
            f"{len(valid)} categories have clues for all {len(self.required_tiers)} values"
        )

        if clear_existing:
            clear_category_files(self.output_dir)

        written = write_categories(
            valid, self.output_dir, self.index_file, self.required_tiers
        )

        summary = PreprocessSummary(
            files_read=len(files),
            lines_read=self.lines_read,
            records_parsed=parser.parsed_count,
            rejections=dict(parser.rejections),
            empty_category_drops=aggregator.empty_category_drops,
            group_count=len(aggregator.groups),
            valid_count=len(valid),
            category_files=written,
            index_file=self.index_file,
        )

        if self.report_file is not None:
            report = build_coverage_report(aggregator.groups, self.required_tiers)
            self.report_file.parent.mkdir(parents=True, exist_ok=True)
            report.to_csv(self.report_file, index=False)
            summary.report_file = self.report_file
            logger.info(f"Coverage report written to {self.report_file}")

        logger.info(
            f"PREPROCESS_COMPLETE: {summary.valid_count} categories, "
            f"{summary.rejected_count} rejected lines, "
            f"{summary.empty_category_drops} records without category"
        )
        return summary
