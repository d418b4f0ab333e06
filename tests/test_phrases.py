"""
Test suite for the host phrase catalog and phrase task construction.
"""

import tempfile
from pathlib import Path

import pytest

from cerebrum.audio.tasks import TaskKind, build_phrase_tasks, count_existing
from cerebrum.phrases import game_phrases
from cerebrum.phrases.game_phrases import Phrase, PhraseCategory


class TestPhraseCatalog:
    """Test catalog contents and lookups."""

    def test_counts(self):
        assert game_phrases.total_count() == 99
        assert game_phrases.bundleable_count() == 76
        assert len(game_phrases.get_runtime_phrases()) == 23

    def test_ids_unique(self):
        ids = [phrase.id for phrase in game_phrases.ALL_PHRASES]
        assert len(ids) == len(set(ids))

    def test_partition_is_complete(self):
        """Test that every phrase is either bundleable or runtime-only."""
        bundleable = set(p.id for p in game_phrases.get_bundleable_phrases())
        runtime = set(p.id for p in game_phrases.get_runtime_phrases())

        assert bundleable.isdisjoint(runtime)
        assert len(bundleable) + len(runtime) == game_phrases.total_count()

    def test_bundleable_flags(self):
        assert Phrase("x", "Hi.", PhraseCategory.GAME_FLOW).is_bundleable
        assert not Phrase("x", "Hi.", PhraseCategory.GAME_FLOW, name_prefix=True).is_bundleable
        assert not Phrase("x", "Hi.", PhraseCategory.GAME_FLOW, name_suffix=True).is_bundleable

    def test_get_by_id(self):
        phrase = game_phrases.get_by_id("dd_announce")

        assert phrase.text == "Daily Double!"
        assert phrase.category == PhraseCategory.DAILY_DOUBLE
        assert game_phrases.get_by_id("does_not_exist") is None

    def test_get_by_category(self):
        buzz = game_phrases.get_by_category(PhraseCategory.BUZZ_IN)

        assert [p.id for p in buzz] == ["buzz_yes_1", "buzz_yes_2", "buzz_go"]
        assert all(p.name_prefix for p in buzz)

    def test_name_placement(self):
        """Test a few phrases whose name position matters at play time."""
        assert game_phrases.get_by_id("winner_is").name_suffix
        assert game_phrases.get_by_id("correct_1").name_suffix
        assert game_phrases.get_by_id("correct_5").is_bundleable
        assert game_phrases.get_by_id("first_pick").name_prefix

    def test_every_category_used(self):
        for category in PhraseCategory:
            assert game_phrases.get_by_category(category), f"{category} has no phrases"


class TestPhraseTasks:
    """Test building generation tasks from phrases."""

    def test_build_phrase_tasks(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = build_phrase_tasks(game_phrases.get_bundleable_phrases(), temp_dir)

            assert len(tasks) == game_phrases.bundleable_count()
            first = tasks[0]
            assert first.kind == TaskKind.PHRASE
            assert first.task_id == "correct_5"
            assert first.destination == Path(temp_dir) / "correct_5.mp3"
            assert first.text == "You got it!"

    def test_runtime_phrase_rejected(self):
        with pytest.raises(ValueError):
            build_phrase_tasks([game_phrases.get_by_id("buzz_go")], "out")

    def test_custom_extension(self):
        tasks = build_phrase_tasks([game_phrases.get_by_id("thanks")], "out", extension="wav")
        assert tasks[0].destination == Path("out") / "thanks.wav"

    def test_count_existing(self):
        """Test the already-generated readout."""
        with tempfile.TemporaryDirectory() as temp_dir:
            phrases = [game_phrases.get_by_id("thanks"), game_phrases.get_by_id("game_over")]
            tasks = build_phrase_tasks(phrases, temp_dir)
            tasks[1].destination.write_bytes(b"ID3")

            assert count_existing(tasks) == 1
