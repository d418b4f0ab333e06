"""
Record Parser for raw tab-separated trivia lines.

Column layout of the source files:

    0 round, 1 value, 2 daily_double_value, 3 category, 4 comments,
    5 prompt, 6 response, 7 air_date, 8 notes

The source calls column 5 "answer" and column 6 "question" because of the
show's answer/question inversion; here they are the prompt shown to the
solver and the expected response.
"""

import logging
from typing import Optional, Tuple
from collections import Counter

from .data_structure import ClueRecord

logger = logging.getLogger(__name__)

MIN_COLUMNS = 7

REJECT_SHORT_LINE = "short_line"
REJECT_BAD_VALUE = "bad_value"
REJECT_DOUBLE_ROUND = "double_round"


def parse_value(raw: str) -> Optional[int]:
    """
    Parse a currency-formatted tier value.

    A leading `$` and thousands separators are removed before integer
    parsing, so "$1,000", "1000" and "1,000" all give 1000.

    Args:
        raw: Value column text

    Returns:
        Parsed integer, or None when the text is not an integer
    """
    if raw is None:
        return None
    text = raw.strip()
    if text.startswith("$"):
        text = text[1:]
    text = text.replace(",", "")
    try:
        return int(text)
    except ValueError:
        return None


def is_double_round(round_text: str) -> bool:
    """Whether the round column names a doubled-value round."""
    return "double" in (round_text or "").strip().lower()


def classify_clue_line(line: str) -> Tuple[Optional[ClueRecord], Optional[str]]:
    """
    Parse one raw line into a ClueRecord or a rejection reason.

    Lines whose value cannot be parsed are rejected. For doubled rounds no
    multiplier is inferred from the round either; those lines are rejected
    with their own reason so the drop is visible in the summary.

    Args:
        line: One raw tab-separated line (without the trailing newline)

    Returns:
        (record, None) on success, (None, reason) on rejection
    """
    parts = line.rstrip("\r\n").split("\t")

    if len(parts) < MIN_COLUMNS:
        return None, REJECT_SHORT_LINE

    value = parse_value(parts[1])
    if value is None:
        if is_double_round(parts[0]):
            return None, REJECT_DOUBLE_ROUND
        return None, REJECT_BAD_VALUE

    air_date = parts[7].strip() if len(parts) > 7 else None

    record = ClueRecord(
        category=parts[3].strip(),
        value=value,
        prompt=parts[5].strip(),
        response=parts[6].strip(),
        air_date=air_date,
    )
    return record, None


def parse_clue_line(line: str) -> Optional[ClueRecord]:
    """Parse one raw line, returning None for any rejected line."""
    record, _ = classify_clue_line(line)
    return record


class RecordParser:
    """
    Stateful wrapper around classify_clue_line that counts rejections.

    The parse itself has no side effects; the counters exist only so the
    ingestion pass can report how many lines were dropped and why.
    """

    def __init__(self):
        self.parsed_count = 0
        self.rejections: Counter = Counter()

    def parse(self, line: str) -> Optional[ClueRecord]:
        """Parse a line and record the outcome."""
        record, reason = classify_clue_line(line)
        if record is None:
            self.rejections[reason] += 1
            logger.debug(f"Rejected line ({reason}): {line[:80]!r}")
            return None
        self.parsed_count += 1
        return record

    @property
    def rejected_count(self) -> int:
        return sum(self.rejections.values())
