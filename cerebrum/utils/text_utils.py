"""
Text utility functions for the Cerebrum content pipeline.

This module provides the small text transforms shared by the category
preprocessor and the category loaders.
"""

from typing import Optional


def normalize_category_key(name: Optional[str]) -> str:
    """
    Build the grouping key for a raw category display string.

    The key is the lowercase, trimmed form of the name. Two records belong to
    the same category exactly when their keys are equal.

    Args:
        name: Raw category string as found in the source data

    Returns:
        Normalized key (empty string for None/whitespace input)
    """
    if not name:
        return ""
    return name.strip().lower()


def sanitize_display_text(text: Optional[str]) -> Optional[str]:
    """
    Remove escape artifacts that should not be shown or spoken.

    Source data sometimes carries literal backslash sequences (a backslash
    followed by a quote or a letter) rather than the characters themselves.

    Args:
        text: Text read from a category file

    Returns:
        Sanitized, trimmed text (None and empty strings pass through)
    """
    if not text:
        return text

    text = text.replace('\\"', '"')
    text = text.replace("\\'", "'")
    text = text.replace("\\\\", "\\")
    text = text.replace("\\n", " ")
    text = text.replace("\\r", "")
    text = text.replace("\\t", " ")

    return text.strip()


def mask_secret(secret: Optional[str]) -> str:
    """Return a log-safe form of an API key."""
    if not secret:
        return "<unset>"
    if len(secret) > 10:
        return f"{secret[:7]}...{secret[-4:]}"
    return "***"
