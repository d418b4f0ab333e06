"""
Phrase catalog for the game host.
"""

from .game_phrases import (
    PhraseCategory,
    Phrase,
    ALL_PHRASES,
    get_by_id,
    get_by_category,
    get_bundleable_phrases,
    get_runtime_phrases,
    total_count,
    bundleable_count,
)

__all__ = [
    'PhraseCategory', 'Phrase', 'ALL_PHRASES', 'get_by_id', 'get_by_category',
    'get_bundleable_phrases', 'get_runtime_phrases', 'total_count', 'bundleable_count'
]
