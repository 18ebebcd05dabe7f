"""Raw data access utilities."""

from .io import (
    DEFAULT_ENCODINGS,
    TextFetcher,
    fetch_text,
    is_url,
    read_text_any_encoding,
    safe_to_datetime,
)

__all__ = [
    "DEFAULT_ENCODINGS",
    "TextFetcher",
    "fetch_text",
    "is_url",
    "read_text_any_encoding",
    "safe_to_datetime",
]
