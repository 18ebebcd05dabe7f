"""Typed failures raised across the forecasting pipeline."""

from __future__ import annotations


class ForecastError(Exception):
    """Base class for every recoverable pipeline failure."""


class ConfigError(ForecastError, ValueError):
    """Configuration value outside its allowed range."""


class ParseError(ForecastError, ValueError):
    """A single source row could not be parsed."""


class InsufficientDataError(ForecastError, ValueError):
    """Parsed series is shorter than the minimum viable length."""


class EmptySeriesError(ForecastError, ValueError):
    """Series has too few points for the requested computation."""


class InsufficientWindowError(ForecastError, ValueError):
    """Not enough returns for the requested window size and horizon."""


class InsufficientHistoryError(ForecastError, ValueError):
    """Prediction input does not have exactly `window_size` values."""


class NoTrainingDataError(ForecastError, ValueError):
    """Training was requested with an empty or missing train split."""


class NoEvaluationDataError(ForecastError, ValueError):
    """Evaluation was requested with an empty or missing test split."""


class ModelNotBuiltError(ForecastError, RuntimeError):
    """Regressor used before `build()`."""


class ModelNotTrainedError(ForecastError, RuntimeError):
    """Regressor used for inference before a successful training run."""


class TrainingInProgressError(ForecastError, RuntimeError):
    """A second training run was requested while one is in flight."""


class TrainingFailedError(ForecastError, RuntimeError):
    """Training aborted; the engine is left without a usable model."""


class DataNotLoadedError(ForecastError, RuntimeError):
    """Operation needs a loaded dataset."""


class DatasetReleasedError(ForecastError, RuntimeError):
    """Buffers of a disposed session were accessed."""


class FetchError(ForecastError, OSError):
    """Raw source text could not be retrieved."""
