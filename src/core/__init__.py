"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Request tracing middleware
- Key and tag normalization utilities
"""

from core.logging import configure_logging, get_logger
from core.utils import (
    normalize_attribute_key,
    normalize_string_set,
    payload_fingerprint,
    split_tag_field,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "normalize_attribute_key",
    "normalize_string_set",
    "payload_fingerprint",
    "split_tag_field",
]
