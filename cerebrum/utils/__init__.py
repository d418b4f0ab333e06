"""
Utilities package for the Cerebrum content pipeline.

This package provides text helpers and configuration management.
"""

from .text_utils import (
    normalize_category_key,
    sanitize_display_text,
    mask_secret,
)
from .config_loader import ConfigLoader, get_config, reload_config

__all__ = [
    'normalize_category_key', 'sanitize_display_text',
    'mask_secret', 'ConfigLoader', 'get_config', 'reload_config'
]
