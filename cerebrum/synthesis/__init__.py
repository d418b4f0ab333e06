"""
Speech synthesis package.

Provides the HTTP client that turns text into audio bytes.
"""

from .synthesis_client import (
    SpeechSynthesisClient,
    SynthesisConfig,
    SynthesisRequest,
    SynthesisResult,
    retry_with_exponential_backoff,
)

__all__ = [
    'SpeechSynthesisClient', 'SynthesisConfig', 'SynthesisRequest',
    'SynthesisResult', 'retry_with_exponential_backoff'
]
