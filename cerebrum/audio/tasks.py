"""
Audio generation tasks.

A task pairs a text with the file its audio must be written to. Tasks are
built in bulk right before a generation run and are never persisted; the
destination path alone decides whether a task still needs work.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_EXTENSION = "mp3"


class TaskKind(Enum):
    CATEGORY = "category"
    CLUE = "clue"
    ANSWER = "answer"
    PHRASE = "phrase"


@dataclass(frozen=True)
class AudioGenerationTask:
    """
    One text to synthesize and where to store it.

    Attributes:
        text: Text sent to the speech endpoint
        destination: Output audio file
        kind: What the text is (category title, clue, answer or phrase)
        category_index: Board column for test game tasks
        clue_index: Position within the category for clue/answer tasks
        phrase_id: Catalog id for phrase tasks
    """

    text: str
    destination: Path
    kind: TaskKind
    category_index: Optional[int] = None
    clue_index: Optional[int] = None
    phrase_id: Optional[str] = None

    @property
    def task_id(self) -> str:
        if self.kind == TaskKind.PHRASE:
            return self.phrase_id or self.destination.stem
        if self.kind == TaskKind.CATEGORY:
            return f"cat{self.category_index}"
        if self.kind == TaskKind.CLUE:
            return f"cat{self.category_index}_clue{self.clue_index}"
        return f"cat{self.category_index}_answer{self.clue_index}"

    @property
    def label(self) -> str:
        """Short human-readable description for progress output."""
        preview = self.text[:40] + ("..." if len(self.text) > 40 else "")
        if self.kind == TaskKind.PHRASE:
            return f"{self.task_id}: {preview}"
        if self.kind == TaskKind.CATEGORY:
            return f"Category {self.category_index}: {preview}"
        kind = "Clue" if self.kind == TaskKind.CLUE else "Answer"
        return f"{kind} {self.category_index}-{self.clue_index}: {preview}"


def build_test_game_tasks(
    config,
    output_root: Union[str, Path],
    extension: str = DEFAULT_AUDIO_EXTENSION,
) -> List[AudioGenerationTask]:
    """
    Build the tasks for every spoken element of a test game.

    Category titles come first, then all clues, then all answers, each in
    category and clue order. The output layout mirrors the lookup paths of
    the test game configuration.

    Args:
        config: TestGameConfig providing the categories
        output_root: Directory holding Categories/, Clues/ and Answers/
        extension: Audio file extension

    Returns:
        Ordered list of tasks
    """
    root = Path(output_root)
    tasks = []

    for c, category in enumerate(config.categories):
        tasks.append(
            AudioGenerationTask(
                text=category.title,
                destination=root / "Categories" / f"cat{c}.{extension}",
                kind=TaskKind.CATEGORY,
                category_index=c,
            )
        )

    for c, category in enumerate(config.categories):
        for i, clue in enumerate(category.clues):
            tasks.append(
                AudioGenerationTask(
                    text=clue.question,
                    destination=root / "Clues" / f"cat{c}_clue{i}.{extension}",
                    kind=TaskKind.CLUE,
                    category_index=c,
                    clue_index=i,
                )
            )

    for c, category in enumerate(config.categories):
        for i, clue in enumerate(category.clues):
            tasks.append(
                AudioGenerationTask(
                    text=clue.answer,
                    destination=root / "Answers" / f"cat{c}_answer{i}.{extension}",
                    kind=TaskKind.ANSWER,
                    category_index=c,
                    clue_index=i,
                )
            )

    logger.debug(f"Built {len(tasks)} test game tasks under {root}")
    return tasks


def build_phrase_tasks(
    phrases: Iterable,
    output_dir: Union[str, Path],
    extension: str = DEFAULT_AUDIO_EXTENSION,
) -> List[AudioGenerationTask]:
    """
    Build one task per bundleable phrase, stored as `{id}.{extension}`.

    Raises:
        ValueError: If a phrase needs a player name at play time
    """
    output_dir = Path(output_dir)
    tasks = []
    for phrase in phrases:
        if not phrase.is_bundleable:
            raise ValueError(
                f"Phrase '{phrase.id}' needs a player name and cannot be pre-generated"
            )
        tasks.append(
            AudioGenerationTask(
                text=phrase.text,
                destination=output_dir / f"{phrase.id}.{extension}",
                kind=TaskKind.PHRASE,
                phrase_id=phrase.id,
            )
        )
    return tasks


def count_existing(tasks: Iterable[AudioGenerationTask]) -> int:
    """Number of tasks whose destination file already exists."""
    return sum(1 for task in tasks if task.destination.exists())
