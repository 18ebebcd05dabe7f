"""Delimited price text -> ordered, deduplicated daily price series."""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Optional

import pandas as pd

from .config import ForecastConfig
from .data.io import safe_to_datetime
from .domain.models import PricePoint
from .errors import InsufficientDataError, ParseError

DELIMITER = ";"
DAY_FIRST_FORMAT = "%d.%m.%Y"


def parse_date(value: str) -> Optional[date]:
    """Parse `DD.MM.YYYY`, falling back to generic date parsing."""

    value = value.strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, DAY_FIRST_FORMAT).date()
    except ValueError:
        pass
    parsed = safe_to_datetime(pd.Series([value])).iloc[0]
    if pd.isna(parsed):
        return None
    return parsed.date()


def _rows_frame(lines: list[str]) -> pd.DataFrame:
    """Split raw rows into label/raw_price columns; a missing field becomes None."""

    labels: list[str] = []
    raw_prices: list[Optional[str]] = []
    for line in lines:
        parts = line.split(DELIMITER)
        labels.append(parts[0].strip())
        raw_prices.append(parts[1].strip() if len(parts) > 1 else None)
    return pd.DataFrame({"label": labels, "raw_price": raw_prices}, dtype="object")


def _convert_rows(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce the label/raw_price columns to dates and prices in one pass.

    Invalid values become NaT/NaN and those rows are dropped: non-numeric or
    non-positive or non-finite prices, and dates that match neither
    `DD.MM.YYYY` nor a generic date format.
    """

    frame = frame.copy()
    # Digit-group underscores are accepted by float() but are not price text.
    raw_prices = frame["raw_price"].where(~frame["raw_price"].str.contains("_", na=False, regex=False))
    frame["price"] = pd.to_numeric(raw_prices, errors="coerce")
    dates = pd.to_datetime(frame["label"], format=DAY_FIRST_FORMAT, errors="coerce")
    missing = dates.isna() & (frame["label"] != "")
    if missing.any():
        dates.loc[missing] = safe_to_datetime(frame.loc[missing, "label"])
    frame["date"] = dates

    valid = (frame["price"] > 0) & (frame["price"] < math.inf)
    frame = frame[valid].dropna(subset=["date", "price"]).copy()
    frame["date"] = frame["date"].dt.date
    frame["price"] = frame["price"].astype("float64")
    return frame[["date", "price", "label"]]


def parse_row(line: str) -> PricePoint:
    frame = _rows_frame([line.strip()])
    converted = _convert_rows(frame)
    if converted.empty:
        raise ParseError(f"Expected 'date{DELIMITER}price' with a valid date and positive price, got {line!r}.")
    row = next(converted.itertuples(index=False))
    return PricePoint(date=row.date, price=float(row.price), label=row.label)


def parse_series(text: str, *, min_length: Optional[int] = None) -> list[PricePoint]:
    """
    Parse header + `date;price` rows into a date-sorted price series.

    Malformed rows are skipped, not fatal. Duplicate dates keep the last row.
    Raises `InsufficientDataError` when fewer than `min_length` points survive.
    """

    if min_length is None:
        min_length = ForecastConfig.MIN_SERIES_LENGTH

    lines = [line.strip() for line in text.strip().splitlines()[1:]]
    lines = [line for line in lines if line]

    points: list[PricePoint] = []
    skipped = 0
    if lines:
        raw = _rows_frame(lines)
        frame = _convert_rows(raw)
        skipped = len(raw) - len(frame)
        frame = frame.drop_duplicates(subset=["date"], keep="last").sort_values("date", kind="mergesort")
        points = [
            PricePoint(date=row.date, price=float(row.price), label=row.label)
            for row in frame.itertuples(index=False)
        ]

    if skipped:
        print(f"[data] skipped {skipped} malformed rows")
    if len(points) < min_length:
        raise InsufficientDataError(
            f"Insufficient data. Need at least {min_length} days, got {len(points)}."
        )
    return points


class SeriesParser:
    """Reusable parser bound to a minimum viable series length."""

    def __init__(self, min_length: Optional[int] = None):
        self.min_length = ForecastConfig.MIN_SERIES_LENGTH if min_length is None else int(min_length)

    def parse(self, text: str) -> list[PricePoint]:
        return parse_series(text, min_length=self.min_length)
