"""
Per-load pipeline session.

A session is the arena for everything derived from one raw text load: the
price series, returns, normalization params, windows, tensors and the engine
bound to those params. Reloading data means building a new session and
disposing the old one whole; no field is ever patched in place.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import pandas as pd

from .config import PipelineConfig
from .domain.models import (
    DataSummary,
    DatasetTensors,
    EvaluationMetrics,
    ForecastDay,
    ForecastReport,
    HistoricalSeries,
    NormalizationParams,
    PricePoint,
    PriceRange,
    ReturnStats,
    TrainingHistory,
    WindowSplit,
)
from .engine import ForecastEngine, OnEpochEnd, OnTrainEnd, project_prices
from .errors import DatasetReleasedError
from .normalizer import Normalizer
from .ports.interfaces import TrainableRegressorPort
from .returns import compute_returns
from .series_parser import parse_series
from .windows import build_windows, to_tensors


@dataclass
class PreparedDataset:
    """Immutable-by-convention derived artifacts of one load."""

    points: list[PricePoint]
    returns: list[float]
    params: NormalizationParams
    normalized: list[float]
    split: WindowSplit


def prepare_dataset(points: list[PricePoint], config: PipelineConfig) -> PreparedDataset:
    returns = compute_returns(points)
    params = Normalizer.fit(returns)
    normalized = Normalizer.transform(returns, params)
    split = build_windows(
        normalized,
        window_size=config.window_size,
        horizon=config.horizon,
        test_fraction=config.test_fraction,
    )
    return PreparedDataset(
        points=points,
        returns=returns,
        params=params,
        normalized=normalized,
        split=split,
    )


class PipelineSession:
    """One dataset load plus the engine trained on it."""

    def __init__(
        self,
        dataset: PreparedDataset,
        tensors: DatasetTensors,
        config: PipelineConfig,
        *,
        regressor_factory: Optional[Callable[[], TrainableRegressorPort]] = None,
    ):
        self.config = config
        self._dataset: Optional[PreparedDataset] = dataset
        self._tensors: Optional[DatasetTensors] = tensors
        self.engine = ForecastEngine(
            dataset.params,
            regressor_factory=regressor_factory,
            yield_every=config.yield_every,
        )

    @classmethod
    def from_text(
        cls,
        text: str,
        config: Optional[PipelineConfig] = None,
        *,
        regressor_factory: Optional[Callable[[], TrainableRegressorPort]] = None,
    ) -> "PipelineSession":
        config = config or PipelineConfig.from_env()
        points = parse_series(text, min_length=config.min_series_length)
        dataset = prepare_dataset(points, config)
        tensors = to_tensors(dataset.split)

        split = dataset.split
        print(
            f"[data] {len(points)} days, {points[0].label} to {points[-1].label}, "
            f"{len(dataset.returns)} returns"
        )
        print(
            f"[split] {split.total_samples} samples: "
            f"{len(split.train_windows)} train, {len(split.test_windows)} test"
        )
        print(f"[split] x_train={tuple(tensors.x_train.shape)} y_train={tuple(tensors.y_train.shape)}")
        return cls(dataset, tensors, config, regressor_factory=regressor_factory)

    @property
    def is_disposed(self) -> bool:
        return self._dataset is None

    @property
    def dataset(self) -> PreparedDataset:
        if self._dataset is None:
            raise DatasetReleasedError("Session data has been released. Load data again.")
        return self._dataset

    @property
    def tensors(self) -> DatasetTensors:
        if self._tensors is None:
            raise DatasetReleasedError("Session tensors have been released. Load data again.")
        return self._tensors

    @property
    def last_price(self) -> float:
        return self.dataset.points[-1].price

    def latest_window(self) -> list[float]:
        window_size = self.config.window_size
        return list(self.dataset.normalized[-window_size:])

    async def train(
        self,
        *,
        epochs: Optional[int] = None,
        batch_size: Optional[int] = None,
        on_epoch_end: Optional[OnEpochEnd] = None,
        on_train_end: Optional[OnTrainEnd] = None,
    ) -> TrainingHistory:
        config = self.config.replace(epochs=epochs, batch_size=batch_size)
        tensors = self.tensors
        self.engine.build(config.window_size, config.horizon, config.architecture)
        return await self.engine.train(
            tensors.x_train,
            tensors.y_train,
            tensors.x_test,
            tensors.y_test,
            epochs=config.epochs,
            batch_size=config.batch_size,
            on_epoch_end=on_epoch_end,
            on_train_end=on_train_end,
        )

    def evaluate(self) -> EvaluationMetrics:
        tensors = self.tensors
        return self.engine.evaluate(tensors.x_test, tensors.y_test)

    def predict(self) -> ForecastReport:
        forecast = self.engine.predict(self.latest_window())
        last_price = self.last_price
        prices = project_prices(last_price, forecast)
        days = [
            ForecastDay(day=idx + 1, predicted_return=ret, expected_price=price)
            for idx, (ret, price) in enumerate(zip(forecast.returns, prices))
        ]
        return ForecastReport(last_price=last_price, days=days)

    def summary(self) -> DataSummary:
        dataset = self.dataset
        prices = pd.Series([p.price for p in dataset.points], dtype="float64")
        returns = pd.Series(dataset.returns, dtype="float64")
        return DataSummary(
            total_days=len(dataset.points),
            start_label=dataset.points[0].label,
            end_label=dataset.points[-1].label,
            price_range=PriceRange(
                min=float(prices.min()),
                max=float(prices.max()),
                last=float(prices.iloc[-1]),
            ),
            return_stats=ReturnStats(
                min=float(returns.min()),
                max=float(returns.max()),
                mean=float(returns.mean()),
                std=float(returns.std(ddof=0)),
            ),
        )

    def historical(self) -> HistoricalSeries:
        dataset = self.dataset
        return HistoricalSeries(
            labels=[p.label for p in dataset.points],
            prices=[p.price for p in dataset.points],
            returns=list(dataset.returns),
            normalized_returns=list(dataset.normalized),
        )

    def dispose(self) -> None:
        """Release tensors and the engine; safe to call more than once."""
        self.engine.dispose()
        self._tensors = None
        self._dataset = None
