from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd
import requests

from forecast_core.config import ForecastConfig
from forecast_core.errors import FetchError

DEFAULT_ENCODINGS: tuple[str, ...] = ("utf-8", "utf-8-sig", "latin-1")
URL_SCHEMES: tuple[str, ...] = ("http://", "https://")


def read_text_any_encoding(path: Path, *, encodings: Iterable[str] = DEFAULT_ENCODINGS) -> str:
    """Read a text file by trying common encodings in order."""

    last_err: Optional[Exception] = None
    for encoding in encodings:
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError as exc:
            last_err = exc
    if last_err is not None:
        raise last_err
    raise RuntimeError(f"failed to read text: {path}")


def safe_to_datetime(series: pd.Series, *, utc: bool = False) -> pd.Series:
    """Convert to datetime with invalid values coerced to NaT."""

    try:
        return pd.to_datetime(series, errors="coerce", utc=utc, format="mixed")
    except TypeError:
        return pd.to_datetime(series, errors="coerce", utc=utc)


def is_url(source: str) -> bool:
    return source.strip().lower().startswith(URL_SCHEMES)


def fetch_text(source: Union[str, Path], *, timeout: Optional[float] = None) -> str:
    """Return the raw text behind a local path or an http(s) URL."""

    if timeout is None:
        timeout = ForecastConfig.FETCH_TIMEOUT

    if isinstance(source, str) and is_url(source):
        try:
            resp = requests.get(source, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Failed to load data from {source}: {exc}") from exc
        return resp.text

    path = Path(source)
    if not path.is_file():
        raise FetchError(f"Failed to load data: no such file {path}")
    try:
        return read_text_any_encoding(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise FetchError(f"Failed to load data from {path}: {exc}") from exc


class TextFetcher:
    """Default raw-data fetcher for local files and http(s) URLs."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = ForecastConfig.FETCH_TIMEOUT if timeout is None else float(timeout)

    def fetch_text(self, source: Union[str, Path]) -> str:
        return fetch_text(source, timeout=self.timeout)
