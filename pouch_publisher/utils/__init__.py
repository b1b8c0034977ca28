"""Utility exports."""

from .file_helper import atomic_write_text, ensure_parent
from .logging import configure_logging, get_logger, mask_secrets
from .text import size_in_mb, slugify, utc_timestamp

__all__ = [
    "atomic_write_text",
    "ensure_parent",
    "configure_logging",
    "get_logger",
    "mask_secrets",
    "size_in_mb",
    "slugify",
    "utc_timestamp",
]
