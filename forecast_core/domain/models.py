from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import torch


@dataclass(frozen=True)
class PricePoint:
    """One daily observation; `label` keeps the source date text."""

    date: date
    price: float
    label: str


@dataclass(frozen=True)
class NormalizationParams:
    """Min/max of the full return series of one dataset load."""

    min: float
    max: float

    @property
    def range(self) -> float:
        spread = self.max - self.min
        return spread if spread != 0 else 1.0


@dataclass
class WindowSplit:
    """Sliding windows and targets cut chronologically into train/test."""

    train_windows: list[list[float]]
    train_targets: list[list[float]]
    test_windows: list[list[float]]
    test_targets: list[list[float]]
    train_indices: list[int]
    test_indices: list[int]
    split_index: int
    total_samples: int
    window_size: int
    horizon: int


@dataclass
class DatasetTensors:
    """Packed model inputs: x is [n, window, 1], y is [n, horizon]."""

    x_train: torch.Tensor
    y_train: torch.Tensor
    x_test: torch.Tensor
    y_test: torch.Tensor


@dataclass(frozen=True)
class ForecastResult:
    """Denormalized returns for day+1 .. day+horizon."""

    returns: list[float]
    normalized: list[float]

    @property
    def horizon(self) -> int:
        return len(self.returns)


@dataclass(frozen=True)
class EpochLogs:
    epoch: int
    loss: float
    validation_loss: Optional[float] = None


@dataclass
class TrainingHistory:
    epoch: list[int] = field(default_factory=list)
    loss: list[float] = field(default_factory=list)
    validation_loss: list[Optional[float]] = field(default_factory=list)

    def append(self, logs: EpochLogs) -> None:
        self.epoch.append(logs.epoch)
        self.loss.append(logs.loss)
        self.validation_loss.append(logs.validation_loss)

    def __len__(self) -> int:
        return len(self.epoch)


@dataclass(frozen=True)
class EvaluationMetrics:
    """Held-out test metrics, in normalized return units."""

    loss: float
    mean_squared_error: float
    root_mean_squared_error: float


@dataclass(frozen=True)
class PriceRange:
    min: float
    max: float
    last: float


@dataclass(frozen=True)
class ReturnStats:
    min: float
    max: float
    mean: float
    std: float


@dataclass(frozen=True)
class DataSummary:
    total_days: int
    start_label: str
    end_label: str
    price_range: PriceRange
    return_stats: ReturnStats

    @property
    def date_range(self) -> str:
        return f"{self.start_label} to {self.end_label}"


@dataclass(frozen=True)
class HistoricalSeries:
    labels: list[str]
    prices: list[float]
    returns: list[float]
    normalized_returns: list[float]


@dataclass(frozen=True)
class ForecastDay:
    day: int
    predicted_return: float
    expected_price: float


@dataclass(frozen=True)
class ForecastReport:
    """Day-by-day forecast compounded from the last known price."""

    last_price: float
    days: list[ForecastDay]

    @property
    def returns(self) -> list[float]:
        return [d.predicted_return for d in self.days]

    @property
    def prices(self) -> list[float]:
        return [d.expected_price for d in self.days]
