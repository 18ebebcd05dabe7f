from __future__ import annotations

from typing import Sequence, Union

from .domain.models import PricePoint
from .errors import EmptySeriesError


def compute_returns(prices: Sequence[Union[PricePoint, float]]) -> list[float]:
    """Simple returns over adjacent pairs: (p[i+1] - p[i]) / p[i]."""

    if len(prices) < 2:
        raise EmptySeriesError(f"Need at least 2 prices to compute returns, got {len(prices)}.")
    values = [float(p.price) if isinstance(p, PricePoint) else float(p) for p in prices]
    return [(cur - prev) / prev for prev, cur in zip(values[:-1], values[1:])]
