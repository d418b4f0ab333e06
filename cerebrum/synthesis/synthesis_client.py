"""
Speech synthesis client for the Cerebrum content pipeline.

This module wraps the text-to-speech HTTP endpoint behind a small contract:
text in, audio bytes or a classified failure out. The scheduler never sees
an exception from here; every outcome is a SynthesisResult.

Key Features:
- Configuration-driven endpoint, model, voice and speed from cerebrum_config.txt
- API key hierarchy: explicit argument > config file > OPENAI_API_KEY
- Retry with exponential backoff for transient failures only
  (timeouts, connection errors, HTTP 429 and 5xx)
- Non-blocking submission on a single background worker returning a Future

Request format:
    POST {base_url}{endpoint}
    Authorization: Bearer <api key>
    {"model": ..., "input": ..., "voice": ..., "speed": ..., "response_format": ...}
"""

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, Optional

import requests

from ..audio.errors import (
    ERROR_KIND_EMPTY_AUDIO,
    ERROR_KIND_UNKNOWN,
    ConfigurationError,
    SynthesisError,
    classify_synthesis_exception,
    error_kind_for_status,
    is_transient_error_kind,
)
from ..utils.config_loader import ConfigLoader, get_config
from ..utils.text_utils import mask_secret

logger = logging.getLogger(__name__)


def retry_with_exponential_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable:
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        backoff_factor: Factor to multiply delay by after each attempt
        exceptions: Tuple of exceptions to catch and retry on
        retry_if: Optional predicate; exceptions it rejects are raised at once
        sleep: Function used to wait between attempts

    Returns:
        Decorated function with retry logic
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay

            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    if attempt < max_attempts - 1:
                        logger.warning(
                            f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.1f} seconds..."
                        )
                        sleep(delay)
                        delay = min(delay * backoff_factor, max_delay)
                    else:
                        logger.error(
                            f"All {max_attempts} attempts failed. Last error: {e}"
                        )
                        raise

        return wrapper

    return decorator


@dataclass
class SynthesisConfig:
    """Connection and voice settings for the speech endpoint."""

    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    endpoint: str = "/audio/speech"
    model: str = "tts-1"
    voice: str = "nova"
    speed: float = 1.0
    response_format: str = "mp3"
    timeout_seconds: float = 60.0
    max_attempts: int = 3
    retry_initial_delay: float = 1.0

    @classmethod
    def from_config(
        cls, config: Optional[ConfigLoader] = None, api_key: Optional[str] = None
    ) -> "SynthesisConfig":
        """Build settings from the config file, resolving the API key."""
        config = config or get_config()
        values: Dict[str, Any] = config.get_synthesis_config()
        values["api_key"] = (
            api_key or values.get("api_key") or os.environ.get("OPENAI_API_KEY", "")
        )
        return cls(**values)

    @property
    def tts_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.endpoint.lstrip('/')}"

    def validate(self):
        """
        Check that a run can start with these settings.

        Raises:
            ConfigurationError: If the API key or endpoint is missing
        """
        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key is required. Set DEFAULT_OPENAI_API_KEY in config, "
                "OPENAI_API_KEY environment variable, or pass --api-key"
            )
        if not self.base_url:
            raise ConfigurationError("TTS_BASE_URL is not configured")
        if not self.model or not self.voice:
            raise ConfigurationError("TTS_MODEL and TTS_VOICE must be set")
        if self.max_attempts < 1:
            raise ConfigurationError(
                f"TTS_MAX_ATTEMPTS must be at least 1, got {self.max_attempts}"
            )
        if not self.api_key.startswith("sk-"):
            logger.warning("OpenAI API key should start with 'sk-'")


@dataclass(frozen=True)
class SynthesisRequest:
    text: str
    model: str
    voice: str
    speed: float = 1.0
    response_format: str = "mp3"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "input": self.text,
            "voice": self.voice,
            "speed": self.speed,
            "response_format": self.response_format,
        }


@dataclass
class SynthesisResult:
    """
    Outcome of one synthesis request.

    Attributes:
        success: True when audio bytes were received
        audio_bytes: Audio payload (empty on failure)
        error: Failure message
        error_kind: Failure classification from cerebrum.audio.errors
        status_code: HTTP status of the final attempt, when one was received
    """

    success: bool
    audio_bytes: bytes = b""
    error: Optional[str] = None
    error_kind: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, audio_bytes: bytes, status_code: int = 200) -> "SynthesisResult":
        return cls(success=True, audio_bytes=audio_bytes, status_code=status_code)

    @classmethod
    def failure(
        cls, error: str, error_kind: str = ERROR_KIND_UNKNOWN, status_code: Optional[int] = None
    ) -> "SynthesisResult":
        return cls(
            success=False, error=error, error_kind=error_kind, status_code=status_code
        )


class SpeechSynthesisClient:
    """
    HTTP client for the text-to-speech endpoint.

    synthesize() blocks and returns a SynthesisResult; submit() runs the same
    call on a single background worker so at most one request is ever
    executing and the caller can poll the returned Future.
    """

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or SynthesisConfig.from_config()
        self.session = session or requests.Session()
        self._executor: Optional[ThreadPoolExecutor] = None

        self._request_with_retry = retry_with_exponential_backoff(
            max_attempts=max(1, self.config.max_attempts),
            initial_delay=self.config.retry_initial_delay,
            exceptions=(SynthesisError, requests.exceptions.RequestException),
            retry_if=lambda e: is_transient_error_kind(classify_synthesis_exception(e)),
            sleep=sleep,
        )(self._post_speech)

        logger.info(
            f"Initialized speech client: url={self.config.tts_url} "
            f"model={self.config.model} voice={self.config.voice} "
            f"key={mask_secret(self.config.api_key)}"
        )

    def validate_config(self):
        """Raise ConfigurationError if a run cannot start."""
        self.config.validate()

    def build_request(self, text: str, voice: Optional[str] = None) -> SynthesisRequest:
        return SynthesisRequest(
            text=text,
            model=self.config.model,
            voice=voice or self.config.voice,
            speed=self.config.speed,
            response_format=self.config.response_format,
        )

    def _post_speech(self, request: SynthesisRequest) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        response = self.session.post(
            self.config.tts_url,
            json=request.to_payload(),
            headers=headers,
            timeout=self.config.timeout_seconds,
        )

        if not 200 <= response.status_code < 300:
            raise SynthesisError(
                f"TTS API Error: {response.status_code} - {response.text[:200]}",
                error_kind=error_kind_for_status(response.status_code),
                status_code=response.status_code,
            )

        if not response.content:
            raise SynthesisError(
                "TTS API returned an empty audio body",
                error_kind=ERROR_KIND_EMPTY_AUDIO,
                status_code=response.status_code,
            )

        return response

    def synthesize(self, text: str, voice: Optional[str] = None) -> SynthesisResult:
        """
        Perform one synthesis request (with retries) and classify the outcome.

        Never raises; failures are returned as unsuccessful results.
        """
        request = self.build_request(text, voice)
        preview = text[:50] + ("..." if len(text) > 50 else "")
        logger.debug(f"Synthesizing: {preview!r}")

        try:
            response = self._request_with_retry(request)
        except SynthesisError as e:
            return SynthesisResult.failure(str(e), e.error_kind, e.status_code)
        except requests.exceptions.RequestException as e:
            return SynthesisResult.failure(
                f"Request failed: {e}", classify_synthesis_exception(e)
            )
        except Exception as e:
            logger.exception(f"Unexpected error while synthesizing {preview!r}")
            return SynthesisResult.failure(
                f"Unexpected error: {e}", classify_synthesis_exception(e)
            )

        logger.debug(f"Received {len(response.content)} bytes of audio")
        return SynthesisResult.ok(response.content, response.status_code)

    def submit(self, text: str, voice: Optional[str] = None) -> "Future[SynthesisResult]":
        """Start a synthesis request in the background and return its Future."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="speech-synthesis"
            )
        return self._executor.submit(self.synthesize, text, voice)

    def close(self):
        """Stop the background worker and release the HTTP session."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
