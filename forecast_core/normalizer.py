from __future__ import annotations

from typing import Iterable, Sequence

from .domain.models import NormalizationParams
from .errors import EmptySeriesError


class Normalizer:
    """
    Stateless min/max scaler for return series.

    `fit` is called once per dataset load; the caller owns the resulting
    params and must pass the same instance to `inverse_transform`.
    """

    @staticmethod
    def fit(returns: Sequence[float]) -> NormalizationParams:
        if len(returns) == 0:
            raise EmptySeriesError("No returns data available to fit normalization.")
        return NormalizationParams(min=float(min(returns)), max=float(max(returns)))

    @staticmethod
    def transform(returns: Iterable[float], params: NormalizationParams) -> list[float]:
        scale = params.range
        return [(float(x) - params.min) / scale for x in returns]

    @staticmethod
    def inverse_transform(value: float, params: NormalizationParams) -> float:
        return float(value) * params.range + params.min

    @classmethod
    def inverse_transform_many(cls, values: Iterable[float], params: NormalizationParams) -> list[float]:
        return [cls.inverse_transform(v, params) for v in values]
