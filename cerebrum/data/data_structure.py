"""
Data structures for trivia clue records and category groups.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

REQUIRED_TIERS: Tuple[int, ...] = (200, 400, 600, 800, 1000)


@dataclass(frozen=True)
class ClueRecord:
    """
    One trivia fact parsed from a raw tab-separated line.

    Attributes:
        category: Raw category display string (trimmed)
        value: Point tier, parsed from currency-formatted text
        prompt: Text shown to the solver
        response: Expected correct response
        air_date: Original air date when the source line carries one
    """

    category: str
    value: int
    prompt: str
    response: str
    air_date: Optional[str] = None


@dataclass
class CategoryGroup:
    """
    All records sharing one normalized category key, in insertion order.

    The display name is taken from the first record inserted under the key;
    first_seen is the global insertion sequence of that first record and is
    the stable sort key used when identifiers are assigned.
    """

    key: str
    display_name: str
    first_seen: int
    records: List[ClueRecord] = field(default_factory=list)

    def tiers_present(self) -> List[int]:
        """Return the distinct values present, in ascending order."""
        return sorted({record.value for record in self.records})

    def first_record_for(self, value: int) -> Optional[ClueRecord]:
        """Return the first record (insertion order) carrying the given value."""
        for record in self.records:
            if record.value == value:
                return record
        return None


@dataclass(frozen=True)
class ValidCategory:
    """
    A category group that covers every required tier.

    Attributes:
        key: Normalized category key
        display_name: Display string of the first record seen for the key
        clues: One (value, record) pair per required tier, in tier order
        first_seen: Insertion sequence of the group's first record
    """

    key: str
    display_name: str
    clues: Tuple[Tuple[int, ClueRecord], ...]
    first_seen: int = 0


@dataclass(frozen=True)
class IndexEntry:
    """One `sequentialIndex|displayName` line of the category index."""

    index: int
    display_name: str


@dataclass
class LoadedCategory:
    """
    A category read back from its on-disk file.

    Attributes:
        index: Sequential identifier the file was written under
        display_name: First line of the file
        clues: (value, prompt, response) triples in file order
    """

    index: int
    display_name: str
    clues: List[Tuple[int, str, str]] = field(default_factory=list)

    def as_tier_map(self) -> Dict[int, Tuple[str, str]]:
        """Map each value to its (prompt, response) pair."""
        return {value: (prompt, response) for value, prompt, response in self.clues}
