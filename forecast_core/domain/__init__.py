"""Domain models shared across application and infrastructure layers."""

from .models import (
    DataSummary,
    DatasetTensors,
    EpochLogs,
    EvaluationMetrics,
    ForecastDay,
    ForecastReport,
    ForecastResult,
    HistoricalSeries,
    NormalizationParams,
    PricePoint,
    PriceRange,
    ReturnStats,
    TrainingHistory,
    WindowSplit,
)

__all__ = [
    "DataSummary",
    "DatasetTensors",
    "EpochLogs",
    "EvaluationMetrics",
    "ForecastDay",
    "ForecastReport",
    "ForecastResult",
    "HistoricalSeries",
    "NormalizationParams",
    "PricePoint",
    "PriceRange",
    "ReturnStats",
    "TrainingHistory",
    "WindowSplit",
]
