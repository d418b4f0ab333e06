#!/usr/bin/env python3
"""
Cerebrum Content Pipeline

Offline tools that prepare game content: category files built from raw clue
exports, and pre-generated speech audio for host phrases and the test game.

Features:
- Preprocess TSV clue exports into validated category files plus an index
- List the host phrase catalog and how much of it is already generated
- Generate phrase audio through the text-to-speech endpoint (resumable)
- Select a fixed test game board and generate all of its audio
- Configuration-driven defaults with CLI/env override

Usage Examples:
  # Use config defaults (minimal commands)
  python run_content_pipeline.py preprocess
  python run_content_pipeline.py list-phrases
  python run_content_pipeline.py generate-phrases

  # Test game
  python run_content_pipeline.py select-test-game --seed 42
  python run_content_pipeline.py generate-test-game --regenerate-all

  # Override specific parameters
  python run_content_pipeline.py preprocess --source-dir exports/ --output-dir Data/Categories
  python run_content_pipeline.py generate-phrases --voice onyx --api-key sk-...
"""

import argparse
import logging
import random
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from cerebrum.audio.errors import ConfigurationError
from cerebrum.audio.scheduler import Progress, TaskQueueScheduler
from cerebrum.audio.tasks import (
    AudioGenerationTask,
    build_phrase_tasks,
    build_test_game_tasks,
    count_existing,
)
from cerebrum.data.category_builder import CategoryPreprocessor
from cerebrum.data.category_loader import CategoryStore
from cerebrum.data.test_game import TestGameConfig, select_test_game
from cerebrum.phrases import game_phrases
from cerebrum.synthesis.synthesis_client import SpeechSynthesisClient, SynthesisConfig
from cerebrum.utils.config_loader import get_config
from cerebrum.utils.text_utils import mask_secret


def get_config_defaults():
    """Get configuration defaults for CLI arguments."""
    config = get_config()
    return config.get_cli_defaults()


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Setup logging configuration with file output for traceability."""
    level = logging.DEBUG if verbose else logging.INFO

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always detailed in file
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

        logging.info("=== CEREBRUM CONTENT PIPELINE TRACE ===")
        logging.info(f"Start time: {datetime.now().isoformat()}")
        logging.info(f"Log file: {log_file}")
        logging.info(f"Verbose mode: {verbose}")
        logging.info("=" * 60)

    return log_file


def run_preprocess(args) -> bool:
    """Build category files and the index from TSV clue exports."""
    print("📊 CATEGORY PREPROCESSING")
    print("=" * 60)

    try:
        preprocessor = CategoryPreprocessor(
            source_dir=args.source_dir,
            output_dir=args.output_dir,
            index_file=args.index_file,
            report_file=args.report_file,
        )

        print("📋 Configuration:")
        print(f"   Source: {preprocessor.source_dir}")
        print(f"   Output: {preprocessor.output_dir}")
        print(f"   Index: {preprocessor.index_file}")
        print(f"   Required values: {', '.join(str(t) for t in preprocessor.required_tiers)}")

        summary = preprocessor.run(clear_existing=not args.keep_existing)

    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}")
        return False
    except Exception as e:
        print(f"❌ Preprocessing failed: {e}")
        logging.error(f"Preprocessing error: {e}", exc_info=True)
        return False

    print(f"\n✅ {summary.valid_count} categories written from {summary.files_read} files")
    print(f"   Lines read: {summary.lines_read}")
    print(f"   Clues parsed: {summary.records_parsed}")
    print(f"   Unique categories: {summary.group_count}")
    if summary.rejections:
        details = ", ".join(f"{k}={v}" for k, v in sorted(summary.rejections.items()))
        print(f"   Rejected lines: {summary.rejected_count} ({details})")
    if summary.empty_category_drops:
        print(f"   Clues without category: {summary.empty_category_drops}")
    if summary.report_file:
        print(f"   📁 Coverage report: {summary.report_file}")
    return True


def run_list_phrases(args) -> bool:
    """Print the phrase catalog and generation status."""
    print("🎙️  HOST PHRASE CATALOG")
    print("=" * 60)
    print(f"Total phrases: {game_phrases.total_count()}")
    print(f"Bundleable: {game_phrases.bundleable_count()}")
    print(f"Runtime-only (player names): {len(game_phrases.get_runtime_phrases())}")

    tasks = build_phrase_tasks(game_phrases.get_bundleable_phrases(), args.output_dir)
    print(f"Already Generated: {count_existing(tasks)}/{len(tasks)}")

    for category in game_phrases.PhraseCategory:
        phrases = game_phrases.get_by_category(category)
        if not phrases:
            continue
        print(f"\n{category.name} ({len(phrases)}):")
        for phrase in phrases:
            marker = "" if phrase.is_bundleable else "  [runtime]"
            print(f"   {phrase.id}: {phrase.text}{marker}")
    return True


def _print_progress(progress: Progress, last_index: List[int]):
    if progress.current_index != last_index[0]:
        last_index[0] = progress.current_index
        print(f"   {progress.current_index}/{progress.total} - {progress.current_label}")


def run_generation(tasks: List[AudioGenerationTask], args) -> bool:
    """Run a scheduler over the tasks and print the summary."""
    generation_config = get_config().get_generation_config()

    synthesis_config = SynthesisConfig.from_config(api_key=args.api_key)
    if args.voice:
        synthesis_config.voice = args.voice
    if args.model:
        synthesis_config.model = args.model

    existing = count_existing(tasks)
    print("📋 Configuration:")
    print(f"   Tasks: {len(tasks)} (already generated: {existing})")
    print(f"   Mode: {'regenerate all' if args.regenerate_all else 'skip existing'}")
    print(f"   Model: {synthesis_config.model}, voice: {synthesis_config.voice}")
    print(f"   API key: {mask_secret(synthesis_config.api_key)}")

    deadline = generation_config["request_deadline_seconds"] or None
    with SpeechSynthesisClient(synthesis_config) as client:
        scheduler = TaskQueueScheduler(
            client,
            tasks,
            skip_existing=not args.regenerate_all,
            request_deadline_seconds=deadline,
        )

        try:
            scheduler.start()
        except ConfigurationError as e:
            print(f"❌ Configuration error: {e}")
            return False

        last_index = [0]
        while True:
            if scheduler.is_finished:
                summary = scheduler.summary
                break
            try:
                summary = scheduler.run(
                    poll_interval=generation_config["poll_interval"],
                    on_progress=lambda p: _print_progress(p, last_index),
                )
                break
            except KeyboardInterrupt:
                print("\n⚠️  Cancelling after the current request...")
                scheduler.cancel()

    print()
    print(summary.format_report())
    if summary.cancelled:
        print("⚠️  Generation cancelled by user")
        return False
    if summary.has_failures:
        print(f"❌ {summary.failed_count} tasks failed; re-run to retry them")
        return False
    print("✅ All audio generated")
    return True


def run_generate_phrases(args) -> bool:
    """Generate audio for every bundleable host phrase."""
    print("🎙️  PHRASE AUDIO GENERATION")
    print("=" * 60)
    tasks = build_phrase_tasks(game_phrases.get_bundleable_phrases(), args.output_dir)
    return run_generation(tasks, args)


def run_select_test_game(args) -> bool:
    """Pick random complete categories and save the test game config."""
    print("🎲 TEST GAME SELECTION")
    print("=" * 60)

    generation_config = get_config().get_generation_config()
    store = CategoryStore(args.categories_dir, args.index_file)

    config_path = Path(args.config_file)
    if config_path.exists():
        config = TestGameConfig.load(config_path)
    else:
        config = TestGameConfig()

    try:
        store.load_index()
        config = select_test_game(
            store,
            config,
            rng=random.Random(args.seed),
            category_count=generation_config["test_game_category_count"],
            pool_size=args.pool or generation_config["test_game_candidate_pool"],
        )
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}")
        return False

    config.save(config_path)
    for category in config.categories:
        print(f"   - {category.title} ({len(category.clues)} clues)")

    if not config.is_configured:
        print(f"❌ Only {len(config.categories)} complete categories selected")
        return False
    print(f"✅ Test game saved to {config_path}")
    return True


def run_generate_test_game(args) -> bool:
    """Generate audio for the configured test game."""
    print("🎮 TEST GAME AUDIO GENERATION")
    print("=" * 60)

    config_path = Path(args.config_file)
    if not config_path.exists():
        print(f"❌ Test game config not found: {config_path}")
        print("   Run: python run_content_pipeline.py select-test-game")
        return False

    try:
        config = TestGameConfig.load(config_path)
    except ValueError as e:
        print(f"❌ {e}")
        return False

    if not config.is_configured:
        print("❌ Test game config is incomplete (need 6 categories with 5 clues each)")
        return False

    tasks = build_test_game_tasks(config, args.output_dir)
    return run_generation(tasks, args)


def add_generation_arguments(parser: argparse.ArgumentParser, default_output: str):
    parser.add_argument(
        "--output-dir",
        default=default_output,
        help=f"Audio output directory (default: {default_output})",
    )
    parser.add_argument(
        "--regenerate-all",
        action="store_true",
        help="Overwrite audio files that already exist",
    )
    parser.add_argument(
        "--api-key",
        help="OpenAI API key (fallback: config default or OPENAI_API_KEY env var)",
    )
    parser.add_argument("--voice", help="Override the configured TTS voice")
    parser.add_argument("--model", help="Override the configured TTS model")


def main():
    """Main CLI entry point."""
    config_defaults = get_config_defaults()

    parser = argparse.ArgumentParser(
        description="Cerebrum Content Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s preprocess
  %(prog)s list-phrases
  %(prog)s generate-phrases --regenerate-all
  %(prog)s select-test-game --seed 42
  %(prog)s generate-test-game
        """,
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    preprocess_parser = subparsers.add_parser(
        "preprocess", help="Build category files and index from TSV exports"
    )
    preprocess_parser.add_argument(
        "--source-dir",
        default=config_defaults["source_dir"],
        help=f"Directory of *.tsv clue exports (default: {config_defaults['source_dir']})",
    )
    preprocess_parser.add_argument(
        "--output-dir",
        default=config_defaults["output_dir"],
        help=f"Category file directory (default: {config_defaults['output_dir']})",
    )
    preprocess_parser.add_argument(
        "--index-file",
        default=config_defaults["index_file"],
        help=f"Index file path (default: {config_defaults['index_file']})",
    )
    preprocess_parser.add_argument(
        "--report-file",
        default=config_defaults["report_file"],
        help="CSV coverage report path (empty to skip)",
    )
    preprocess_parser.add_argument(
        "--keep-existing",
        action="store_true",
        help="Do not delete old category files before writing",
    )

    phrases_parser = subparsers.add_parser(
        "list-phrases", help="Show the host phrase catalog"
    )
    phrases_parser.add_argument(
        "--output-dir",
        default=config_defaults["phrase_audio_dir"],
        help=f"Phrase audio directory (default: {config_defaults['phrase_audio_dir']})",
    )

    generate_phrases_parser = subparsers.add_parser(
        "generate-phrases", help="Generate audio for all bundleable phrases"
    )
    add_generation_arguments(generate_phrases_parser, config_defaults["phrase_audio_dir"])

    select_parser = subparsers.add_parser(
        "select-test-game", help="Pick random categories for the test game"
    )
    select_parser.add_argument(
        "--categories-dir",
        default=config_defaults["output_dir"],
        help=f"Category file directory (default: {config_defaults['output_dir']})",
    )
    select_parser.add_argument(
        "--index-file",
        default=config_defaults["index_file"],
        help=f"Index file path (default: {config_defaults['index_file']})",
    )
    select_parser.add_argument(
        "--config-file",
        default=config_defaults["test_game_config_file"],
        help=f"Test game config (default: {config_defaults['test_game_config_file']})",
    )
    select_parser.add_argument("--seed", type=int, help="Random seed for reproducible picks")
    select_parser.add_argument(
        "--pool", type=int, help="Number of most recent categories to choose from"
    )

    generate_game_parser = subparsers.add_parser(
        "generate-test-game", help="Generate audio for the test game"
    )
    generate_game_parser.add_argument(
        "--config-file",
        default=config_defaults["test_game_config_file"],
        help=f"Test game config (default: {config_defaults['test_game_config_file']})",
    )
    add_generation_arguments(generate_game_parser, config_defaults["test_game_audio_dir"])

    args = parser.parse_args()

    if hasattr(args, "api_key") and not args.api_key and config_defaults["api_key"]:
        args.api_key = config_defaults["api_key"]

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = f"logs/content_pipeline_{timestamp}.log"
    actual_log_file = setup_logging(args.verbose, log_file)

    if actual_log_file:
        print(f"📝 Detailed trace logging to: {actual_log_file}")

    logged_args = dict(vars(args))
    if logged_args.get("api_key"):
        logged_args["api_key"] = mask_secret(logged_args["api_key"])
    logging.info(f"COMMAND: {' '.join(sys.argv[:2])}")
    logging.info(f"ARGUMENTS: {logged_args}")

    if not args.command:
        parser.print_help()
        return False

    commands = {
        "preprocess": run_preprocess,
        "list-phrases": run_list_phrases,
        "generate-phrases": run_generate_phrases,
        "select-test-game": run_select_test_game,
        "generate-test-game": run_generate_test_game,
    }

    try:
        return commands[args.command](args)
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user")
        return False
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
