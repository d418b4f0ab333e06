"""
Configuration Management System for the Cerebrum content pipeline.

This module provides centralized configuration management for the offline
content tools. It loads parameters from cerebrum_config.txt with type-safe
parsing, hierarchical fallbacks, and default values for every component.

Key Features:
- Type-safe parameter parsing (string, int, float, bool)
- Hierarchical configuration: CLI args → Config file → Environment → Defaults
- Grouped views for preprocessing, speech synthesis and audio generation
- CLI defaults integration for streamlined command-line usage

Architecture:
- ConfigLoader: Main configuration management class
- Global config singleton via get_config()
- Automatic project root detection
"""

import logging
from pathlib import Path
from typing import Dict, Any, Union

logger = logging.getLogger(__name__)

__all__ = ["ConfigLoader", "get_config", "reload_config"]


class ConfigLoader:
    """
    Loads and manages configuration parameters for the content pipeline.

    Provides type-safe access to configuration values with defaults.
    """

    def __init__(self, config_file: str = "cerebrum_config.txt"):
        """
        Initialize configuration loader.

        Args:
            config_file: Path to configuration file relative to project root
        """
        self.config_file = config_file
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from file."""
        config_path = None

        explicit_path = Path(self.config_file)
        if explicit_path.is_absolute():
            if explicit_path.exists():
                config_path = explicit_path
        else:
            # Search up the directory tree from the package
            current_path = Path(__file__).parent
            for _ in range(5):
                potential_path = current_path / self.config_file
                if potential_path.exists():
                    config_path = potential_path
                    break
                current_path = current_path.parent

        if config_path is None:
            logger.warning(f"Config file {self.config_file} not found, using defaults")
            self._load_defaults()
            return

        logger.info(f"Loading configuration from {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()

                    if not line or line.startswith("#"):
                        continue

                    if "=" not in line:
                        logger.warning(f"Invalid config line {line_num}: {line}")
                        continue

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()

                    self.config[key] = self._parse_value(value)

            logger.info(f"Loaded {len(self.config)} configuration parameters")

        except OSError as e:
            logger.error(f"Failed to load config: {e}")
            self._load_defaults()

    def _parse_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse string value to appropriate Python type."""
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        if value and value.replace(".", "", 1).lstrip("-").isdigit():
            if "." in value:
                return float(value)
            else:
                return int(value)

        return value

    def _load_defaults(self):
        """Load default configuration values."""
        self.config = {
            # Category preprocessing
            "CLUES_SOURCE_DIR": "Assets/Clues",
            "CATEGORIES_OUTPUT_DIR": "Data/Categories",
            "CATEGORY_INDEX_FILE": "Data/category_index.txt",
            "CATEGORY_REPORT_FILE": "",
            "REQUIRED_TIERS": "200,400,600,800,1000",
            # Speech synthesis
            "TTS_BASE_URL": "https://api.openai.com/v1",
            "TTS_ENDPOINT": "/audio/speech",
            "TTS_MODEL": "tts-1",
            "TTS_VOICE": "nova",
            "TTS_SPEED": 1.0,
            "TTS_RESPONSE_FORMAT": "mp3",
            "TTS_REQUEST_TIMEOUT_SECONDS": 60,
            "TTS_REQUEST_DEADLINE_SECONDS": 240,
            "TTS_MAX_ATTEMPTS": 3,
            "TTS_RETRY_INITIAL_DELAY": 1.0,
            # Audio generation
            "PHRASE_AUDIO_DIR": "Resources/Audio/Phrases",
            "TEST_GAME_AUDIO_DIR": "Resources/Audio/TestGame",
            "TEST_GAME_CONFIG_FILE": "Data/test_game_config.json",
            "TEST_GAME_CATEGORY_COUNT": 6,
            "TEST_GAME_CANDIDATE_POOL": 500,
            "SCHEDULER_POLL_INTERVAL": 0.05,
            # CLI defaults
            "DEFAULT_OPENAI_API_KEY": "",
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration parameter name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        """Get integer configuration value."""
        value = self.get(key, default)
        try:
            return int(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid integer value for {key}: {value}")
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get float configuration value."""
        value = self.get(key, default)
        try:
            return float(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid float value for {key}: {value}")
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get boolean configuration value."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return default

    def get_string(self, key: str, default: str = "") -> str:
        """Get string configuration value."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def get_list_of_ints(self, key: str, default: str = "") -> list:
        """Get list of integers from comma-separated string configuration value."""
        value = self.get_string(key, default)
        if not value:
            return []
        try:
            return [int(item.strip()) for item in value.split(",")]
        except (ValueError, TypeError):
            logger.warning(f"Invalid list of integers for {key}: {value}")
            if default:
                return [int(item.strip()) for item in default.split(",")]
            return []

    def get_preprocess_config(self) -> Dict[str, Any]:
        """Get category preprocessing configuration."""
        return {
            "CLUES_SOURCE_DIR": self.get_string("CLUES_SOURCE_DIR", "Assets/Clues"),
            "CATEGORIES_OUTPUT_DIR": self.get_string(
                "CATEGORIES_OUTPUT_DIR", "Data/Categories"
            ),
            "CATEGORY_INDEX_FILE": self.get_string(
                "CATEGORY_INDEX_FILE", "Data/category_index.txt"
            ),
            "CATEGORY_REPORT_FILE": self.get_string("CATEGORY_REPORT_FILE", ""),
            "REQUIRED_TIERS": self.get_list_of_ints(
                "REQUIRED_TIERS", "200,400,600,800,1000"
            ),
        }

    def get_synthesis_config(self) -> Dict[str, Any]:
        """Get speech synthesis endpoint configuration."""
        return {
            "api_key": self.get_string("DEFAULT_OPENAI_API_KEY", ""),
            "base_url": self.get_string("TTS_BASE_URL", "https://api.openai.com/v1"),
            "endpoint": self.get_string("TTS_ENDPOINT", "/audio/speech"),
            "model": self.get_string("TTS_MODEL", "tts-1"),
            "voice": self.get_string("TTS_VOICE", "nova"),
            "speed": self.get_float("TTS_SPEED", 1.0),
            "response_format": self.get_string("TTS_RESPONSE_FORMAT", "mp3"),
            "timeout_seconds": self.get_float("TTS_REQUEST_TIMEOUT_SECONDS", 60.0),
            "max_attempts": self.get_int("TTS_MAX_ATTEMPTS", 3),
            "retry_initial_delay": self.get_float("TTS_RETRY_INITIAL_DELAY", 1.0),
        }

    def get_generation_config(self) -> Dict[str, Any]:
        """Get audio generation configuration parameters."""
        return {
            "phrase_audio_dir": self.get_string(
                "PHRASE_AUDIO_DIR", "Resources/Audio/Phrases"
            ),
            "test_game_audio_dir": self.get_string(
                "TEST_GAME_AUDIO_DIR", "Resources/Audio/TestGame"
            ),
            "test_game_config_file": self.get_string(
                "TEST_GAME_CONFIG_FILE", "Data/test_game_config.json"
            ),
            "test_game_category_count": self.get_int("TEST_GAME_CATEGORY_COUNT", 6),
            "test_game_candidate_pool": self.get_int("TEST_GAME_CANDIDATE_POOL", 500),
            "poll_interval": self.get_float("SCHEDULER_POLL_INTERVAL", 0.05),
            "request_deadline_seconds": self.get_float(
                "TTS_REQUEST_DEADLINE_SECONDS", 240.0
            ),
        }

    def get_cli_defaults(self) -> Dict[str, Any]:
        """Get CLI default values."""
        preprocess = self.get_preprocess_config()
        generation = self.get_generation_config()
        return {
            "source_dir": preprocess["CLUES_SOURCE_DIR"],
            "output_dir": preprocess["CATEGORIES_OUTPUT_DIR"],
            "index_file": preprocess["CATEGORY_INDEX_FILE"],
            "report_file": preprocess["CATEGORY_REPORT_FILE"],
            "phrase_audio_dir": generation["phrase_audio_dir"],
            "test_game_audio_dir": generation["test_game_audio_dir"],
            "test_game_config_file": generation["test_game_config_file"],
            "api_key": self.get_string("DEFAULT_OPENAI_API_KEY", ""),
        }


# Global configuration instance
_config = None


def get_config() -> ConfigLoader:
    """Get global configuration instance."""
    global _config
    if _config is None:
        _config = ConfigLoader()
    return _config


def reload_config():
    """Reload configuration from file."""
    global _config
    _config = ConfigLoader()
    return _config
