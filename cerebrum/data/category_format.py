"""
Category Serializer and reader for the on-disk category format.

Category file (one per valid category, named `{index:05d}.txt`):

    line 1      display name
    lines 2-6   value|prompt|response, one line per required tier

Index file:

    line 1      number of categories
    following   index|display name, one per category

Escaping is applied independently to prompt and response: `|` becomes
`\\|` and is restored on read, while CR/LF are flattened to a single
space and cannot be restored.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .data_structure import (
    REQUIRED_TIERS,
    ClueRecord,
    IndexEntry,
    LoadedCategory,
    ValidCategory,
)

logger = logging.getLogger(__name__)

CATEGORY_FILE_PATTERN = "*.txt"
_UNESCAPED_PIPE = re.compile(r"(?<!\\)\|")
_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def category_file_name(index: int) -> str:
    """Zero-padded file name for a category identifier."""
    return f"{index:05d}.txt"


def escape_field(text: Optional[str]) -> str:
    """Escape a prompt/response for a pipe-delimited tier line."""
    if not text:
        return ""
    return _LINE_BREAKS.sub(" ", text.replace("|", "\\|"))


def unescape_field(text: str) -> str:
    """Reverse the pipe escape; flattened line breaks stay spaces."""
    return text.replace("\\|", "|")


def format_tier_line(value: int, record: Optional[ClueRecord]) -> str:
    """Render one `value|prompt|response` line (empty fields if no record)."""
    if record is None:
        return f"{value}||"
    return f"{value}|{escape_field(record.prompt)}|{escape_field(record.response)}"


def format_category(
    category: ValidCategory, tiers: Sequence[int] = REQUIRED_TIERS
) -> str:
    """
    Render a valid category to the six-line file format.

    Args:
        category: Category with one selected record per tier
        tiers: Tier order for lines 2-6

    Returns:
        File content, newline-terminated
    """
    selected = dict(category.clues)
    lines = [_LINE_BREAKS.sub(" ", category.display_name)]
    for value in tiers:
        record = selected.get(value)
        if record is None:
            logger.warning(
                f"Category '{category.display_name}' has no record for {value}"
            )
        lines.append(format_tier_line(value, record))
    return "\n".join(lines) + "\n"


def format_index(entries: Sequence[IndexEntry]) -> str:
    """Render the index: count line followed by `index|name` lines."""
    lines = [str(len(entries))]
    lines.extend(
        f"{entry.index}|{_LINE_BREAKS.sub(' ', entry.display_name)}"
        for entry in entries
    )
    return "\n".join(lines) + "\n"


def write_categories(
    categories: Sequence[ValidCategory],
    output_dir: Union[str, Path],
    index_file: Union[str, Path],
    tiers: Sequence[int] = REQUIRED_TIERS,
) -> List[Path]:
    """
    Write one file per category and the index that lists them.

    Identifiers are assigned sequentially from 0 in the order given; callers
    sort the categories first when identifiers must be reproducible. The
    index file is fully overwritten.

    Args:
        categories: Valid categories in identifier order
        output_dir: Directory for the per-category files
        index_file: Path of the index file
        tiers: Tier order for the tier lines

    Returns:
        Paths of the written category files
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    entries = []
    for index, category in enumerate(categories):
        path = output_dir / category_file_name(index)
        path.write_text(format_category(category, tiers), encoding="utf-8")
        written.append(path)
        entries.append(IndexEntry(index=index, display_name=category.display_name))

        if index and index % 1000 == 0:
            logger.info(f"Writing category {index}/{len(categories)}")

    index_path = Path(index_file)
    index_path.parent.mkdir(parents=True, exist_ok=True)
    index_path.write_text(format_index(entries), encoding="utf-8")

    logger.info(f"Wrote {len(written)} category files to {output_dir}")
    logger.info(f"Index file written to {index_path}")
    return written


def clear_category_files(output_dir: Union[str, Path]) -> int:
    """Delete previously written category files; returns how many."""
    output_dir = Path(output_dir)
    if not output_dir.exists():
        return 0
    removed = 0
    for path in output_dir.glob(CATEGORY_FILE_PATTERN):
        path.unlink()
        removed += 1
    if removed:
        logger.info(f"Removed {removed} existing category files from {output_dir}")
    return removed


def parse_tier_line(line: str) -> Optional[Tuple[int, str, str]]:
    """
    Decode one tier line into (value, prompt, response).

    Returns None when the line has fewer than three fields or the value
    is not an integer.
    """
    parts = _UNESCAPED_PIPE.split(line.rstrip("\r\n"))
    if len(parts) < 3:
        return None
    try:
        value = int(parts[0])
    except ValueError:
        return None
    prompt = unescape_field(parts[1])
    response = unescape_field("|".join(parts[2:]))
    return value, prompt, response


def parse_category_text(text: str, index: int = 0) -> Optional[LoadedCategory]:
    """
    Decode the content of a category file.

    Args:
        text: Full file content
        index: Identifier the file was written under

    Returns:
        LoadedCategory, or None if the file has fewer than six lines
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if lines and not lines[-1]:
        lines.pop()
    if len(lines) < 1 + len(REQUIRED_TIERS):
        return None

    category = LoadedCategory(index=index, display_name=lines[0].strip())
    for line in lines[1 : 1 + len(REQUIRED_TIERS)]:
        parsed = parse_tier_line(line)
        if parsed is not None:
            category.clues.append(parsed)
    return category


def parse_index_text(text: str) -> Tuple[int, List[IndexEntry]]:
    """
    Decode the index file into its declared count and entries.

    Raises:
        ValueError: If the first line is not an integer
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if not lines[0].strip():
        raise ValueError("Index file is empty")
    count = int(lines[0].strip())

    entries = []
    for line in lines[1:]:
        if not line.strip():
            continue
        number, _, name = line.partition("|")
        try:
            entries.append(IndexEntry(index=int(number), display_name=name))
        except ValueError:
            logger.warning(f"Skipping malformed index line: {line!r}")
    return count, entries
