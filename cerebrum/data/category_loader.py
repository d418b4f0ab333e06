"""
Category Store: read access to preprocessed category files.

The store reads the index once and loads individual category files on
demand, so only the categories a board actually needs are ever read.
"""

import logging
import random
from pathlib import Path
from typing import List, Optional, Union

from ..audio.errors import ConfigurationError
from ..utils.config_loader import get_config
from ..utils.text_utils import sanitize_display_text
from .category_format import category_file_name, parse_category_text, parse_index_text
from .data_structure import REQUIRED_TIERS, IndexEntry, LoadedCategory

logger = logging.getLogger(__name__)


class CategoryStore:
    """
    Lazily loads categories written by the preprocessor.

    Display strings are passed through sanitize_display_text on load, and
    clues with an empty prompt or response are dropped, so a loaded category
    may have fewer than five clues.
    """

    def __init__(
        self,
        categories_dir: Optional[Union[str, Path]] = None,
        index_file: Optional[Union[str, Path]] = None,
    ):
        preprocess_config = get_config().get_preprocess_config()
        self.categories_dir = Path(
            categories_dir or preprocess_config["CATEGORIES_OUTPUT_DIR"]
        )
        self.index_file = Path(index_file or preprocess_config["CATEGORY_INDEX_FILE"])

        self.total_count = 0
        self.entries: List[IndexEntry] = []
        self.is_loaded = False

    def load_index(self) -> int:
        """
        Read the index file.

        Returns:
            Number of categories the index declares

        Raises:
            ConfigurationError: If the index is missing or unreadable
        """
        if not self.index_file.exists():
            raise ConfigurationError(
                f"Category index not found: {self.index_file}. "
                "Run the preprocess command first."
            )

        try:
            count, entries = parse_index_text(self.index_file.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid category index {self.index_file}: {e}") from e

        if count != len(entries):
            logger.warning(
                f"Index declares {count} categories but lists {len(entries)}"
            )

        self.total_count = count
        self.entries = entries
        self.is_loaded = True
        logger.info(f"Index loaded: {self.total_count} categories available")
        return self.total_count

    def _ensure_loaded(self):
        if not self.is_loaded:
            self.load_index()

    def load_category(self, index: int) -> Optional[LoadedCategory]:
        """
        Load one category by identifier.

        Returns:
            LoadedCategory, or None when the file is missing or malformed
        """
        path = self.categories_dir / category_file_name(index)
        if not path.exists():
            logger.warning(f"Category file not found: {path}")
            return None

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Error loading {path}: {e}")
            return None

        raw = parse_category_text(text, index=index)
        if raw is None:
            logger.warning(f"Invalid category file: {path}")
            return None

        category = LoadedCategory(
            index=index, display_name=sanitize_display_text(raw.display_name)
        )
        for value, prompt, response in raw.clues:
            prompt = sanitize_display_text(prompt)
            response = sanitize_display_text(response)
            if not prompt or not response:
                continue
            category.clues.append((value, prompt, response))
        return category

    def load_random(
        self, count: int = 6, rng: Optional[random.Random] = None
    ) -> List[LoadedCategory]:
        """
        Load `count` distinct random categories.

        Raises:
            ConfigurationError: If the index lists fewer than `count` categories
        """
        self._ensure_loaded()
        if self.total_count < count:
            raise ConfigurationError(
                f"Not enough categories. Need {count}, have {self.total_count}"
            )

        rng = rng or random.Random()
        indices = rng.sample(range(self.total_count), count)

        categories = []
        for index in indices:
            category = self.load_category(index)
            if category is not None:
                categories.append(category)

        if len(categories) < count:
            logger.warning(f"Only loaded {len(categories)}/{count} categories")
        logger.info(f"Loaded {len(categories)} random categories")
        return categories

    def select_candidates(
        self,
        count: int = 6,
        pool_size: int = 500,
        rng: Optional[random.Random] = None,
    ) -> List[LoadedCategory]:
        """
        Pick complete categories from the most recently indexed ones.

        The last `pool_size` identifiers are shuffled and walked in order,
        keeping the first `count` categories that load with a clue for every
        tier. Later identifiers come from later source rows, which in a
        chronologically ordered export means more recent material.
        """
        self._ensure_loaded()
        if self.total_count == 0:
            logger.error("No categories available for selection")
            return []

        start = max(0, self.total_count - pool_size)
        candidates = list(range(start, self.total_count))
        rng = rng or random.Random()
        rng.shuffle(candidates)

        selected = []
        for index in candidates:
            if len(selected) == count:
                break
            category = self.load_category(index)
            if category is None or len(category.clues) != len(REQUIRED_TIERS):
                continue
            selected.append(category)

        if len(selected) < count:
            logger.warning(f"Only found {len(selected)}/{count} complete categories")
        return selected
