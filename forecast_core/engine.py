"""
Forecast engine: regressor lifecycle, async training, evaluation and prediction.

States move IDLE -> BUILDING -> BUILT -> TRAINING -> TRAINED, and
TRAINED -> PREDICTING -> TRAINED. A failed or cancelled build/train drops the
regressor and returns to IDLE, so a broken run is never reported as trained.
`dispose()` during a run aborts it with `TrainingFailedError` at the next epoch.
"""
from __future__ import annotations

import asyncio
import math
from enum import Enum
from typing import Callable, Optional, Sequence, Union

import torch

from .config import ArchitectureConfig, ForecastConfig
from .domain.models import (
    EpochLogs,
    EvaluationMetrics,
    ForecastResult,
    NormalizationParams,
    TrainingHistory,
)
from .errors import (
    ConfigError,
    InsufficientHistoryError,
    ModelNotBuiltError,
    ModelNotTrainedError,
    NoEvaluationDataError,
    NoTrainingDataError,
    TrainingFailedError,
    TrainingInProgressError,
)
from .normalizer import Normalizer
from .ports.interfaces import TrainableRegressorPort

TensorLike = Union[torch.Tensor, Sequence]
OnEpochEnd = Callable[[int, EpochLogs], None]
OnTrainEnd = Callable[[], None]


class EngineState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    BUILT = "built"
    TRAINING = "training"
    TRAINED = "trained"
    PREDICTING = "predicting"


def project_prices(last_price: float, forecast: Union[ForecastResult, Sequence[float]]) -> list[float]:
    """Compound returns from `last_price`: p[k] = p[k-1] * (1 + r[k])."""

    returns = forecast.returns if isinstance(forecast, ForecastResult) else forecast
    prices: list[float] = []
    price = float(last_price)
    for ret in returns:
        price = price * (1.0 + float(ret))
        prices.append(price)
    return prices


def _default_regressor_factory() -> TrainableRegressorPort:
    from .gru import GRURegressor

    return GRURegressor()


def _as_float_tensor(data: Optional[TensorLike]) -> Optional[torch.Tensor]:
    if data is None:
        return None
    if isinstance(data, torch.Tensor):
        return data.float()
    return torch.tensor(data, dtype=torch.float32)


def _as_windows(data: Optional[TensorLike]) -> Optional[torch.Tensor]:
    """Windows as [n, window, 1]; bare [n, window] input gains the feature axis."""
    windows = _as_float_tensor(data)
    if windows is not None and windows.ndim == 2:
        windows = windows.unsqueeze(-1)
    return windows


def _rows(data: Optional[torch.Tensor]) -> int:
    if data is None or data.ndim == 0:
        return 0
    return int(data.shape[0])


class ForecastEngine:
    """Owns one regressor and the normalization params of one prepared dataset."""

    def __init__(
        self,
        params: NormalizationParams,
        *,
        regressor_factory: Optional[Callable[[], TrainableRegressorPort]] = None,
        yield_every: Optional[int] = None,
        normalizer: Optional[Normalizer] = None,
    ):
        self._params = params
        self._regressor_factory = regressor_factory or _default_regressor_factory
        self._yield_every = max(1, int(ForecastConfig.YIELD_EVERY if yield_every is None else yield_every))
        self._normalizer = normalizer or Normalizer()
        self._regressor: Optional[TrainableRegressorPort] = None
        self._state = EngineState.IDLE
        self._training = False
        self._window_size: Optional[int] = None
        self._horizon: Optional[int] = None
        self.history: Optional[TrainingHistory] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def params(self) -> NormalizationParams:
        return self._params

    @property
    def is_trained(self) -> bool:
        return self._state in (EngineState.TRAINED, EngineState.PREDICTING)

    @property
    def is_training(self) -> bool:
        return self._training

    @property
    def window_size(self) -> Optional[int]:
        return self._window_size

    @property
    def horizon(self) -> Optional[int]:
        return self._horizon

    def _reset(self) -> None:
        if self._regressor is not None:
            self._regressor.dispose()
        self._regressor = None
        self._window_size = None
        self._horizon = None
        self._state = EngineState.IDLE

    def build(self, window_size: int, horizon: int, architecture: Optional[ArchitectureConfig] = None) -> None:
        if self._training:
            raise TrainingInProgressError("Cannot rebuild the model while training is in progress.")
        if window_size < 1 or horizon < 1:
            raise ConfigError(f"window_size and horizon must be >= 1, got {window_size}, {horizon}.")

        self._reset()
        self._state = EngineState.BUILDING
        try:
            regressor = self._regressor_factory()
            regressor.build(window_size, horizon, architecture or ArchitectureConfig())
        except Exception:
            self._reset()
            raise
        self._regressor = regressor
        self._window_size = int(window_size)
        self._horizon = int(horizon)
        self.history = None
        self._state = EngineState.BUILT

    async def train(
        self,
        train_windows: Optional[TensorLike],
        train_targets: Optional[TensorLike],
        test_windows: Optional[TensorLike] = None,
        test_targets: Optional[TensorLike] = None,
        *,
        epochs: int,
        batch_size: int = 32,
        on_epoch_end: Optional[OnEpochEnd] = None,
        on_train_end: Optional[OnTrainEnd] = None,
    ) -> TrainingHistory:
        if self._training:
            raise TrainingInProgressError("A training run is already in progress.")
        if self._regressor is None or self._state is EngineState.IDLE:
            raise ModelNotBuiltError("Model not built. Call build() first.")
        if epochs < 1:
            raise ConfigError(f"epochs must be >= 1, got {epochs}.")
        if batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1, got {batch_size}.")

        x_train = _as_windows(train_windows)
        y_train = _as_float_tensor(train_targets)
        if _rows(x_train) == 0 or _rows(y_train) == 0:
            raise NoTrainingDataError("Training data not provided: the train split is empty.")
        if _rows(x_train) != _rows(y_train):
            raise NoTrainingDataError(
                f"Train windows and targets disagree in length: {_rows(x_train)} vs {_rows(y_train)}."
            )
        x_test = _as_windows(test_windows)
        y_test = _as_float_tensor(test_targets)
        validation_data = None
        if _rows(x_test) > 0 and _rows(y_test) > 0:
            validation_data = (x_test, y_test)

        history = TrainingHistory()
        regressor = self._regressor

        def _check_not_disposed() -> None:
            # dispose() mid-run swaps out the regressor; the run then ends as failed.
            if self._regressor is not regressor:
                raise TrainingFailedError("Training aborted: engine disposed")

        async def _epoch_end(epoch: int, logs: dict) -> None:
            _check_not_disposed()
            val_loss = logs.get("val_loss")
            epoch_logs = EpochLogs(
                epoch=epoch,
                loss=float(logs["loss"]),
                validation_loss=None if val_loss is None else float(val_loss),
            )
            history.append(epoch_logs)
            if on_epoch_end is not None:
                on_epoch_end(epoch, epoch_logs)
            if (epoch + 1) % self._yield_every == 0:
                await asyncio.sleep(0)
                _check_not_disposed()

        self._training = True
        self._state = EngineState.TRAINING
        try:
            await regressor.fit(
                x_train,
                y_train,
                epochs=epochs,
                batch_size=batch_size,
                validation_data=validation_data,
                on_epoch_end=_epoch_end,
            )
            _check_not_disposed()
        except asyncio.CancelledError:
            print("[train] cancelled; model discarded")
            self._reset()
            raise
        except TrainingFailedError:
            print("[train] aborted; engine disposed during training")
            self._reset()
            raise
        except Exception as exc:
            self._reset()
            raise TrainingFailedError(f"Training failed: {exc}") from exc
        finally:
            self._training = False

        self.history = history
        self._state = EngineState.TRAINED
        if on_train_end is not None:
            on_train_end()
        return history

    def _require_trained(self) -> TrainableRegressorPort:
        if self._regressor is None or not self.is_trained:
            raise ModelNotTrainedError("Model not trained. Please train the model first.")
        return self._regressor

    def evaluate(self, test_windows: Optional[TensorLike], test_targets: Optional[TensorLike]) -> EvaluationMetrics:
        regressor = self._require_trained()
        x_test = _as_windows(test_windows)
        y_test = _as_float_tensor(test_targets)
        if _rows(x_test) == 0 or _rows(y_test) == 0:
            raise NoEvaluationDataError("Test data not provided: the test split is empty.")

        result = regressor.evaluate(x_test, y_test)
        mse = float(result["mse"])
        return EvaluationMetrics(
            loss=float(result["loss"]),
            mean_squared_error=mse,
            root_mean_squared_error=math.sqrt(mse),
        )

    def predict(self, window: TensorLike) -> ForecastResult:
        regressor = self._require_trained()
        if window is None:
            raise InsufficientHistoryError(
                f"Prediction needs exactly {self._window_size} normalized returns, got none."
            )
        values = _as_float_tensor(window).reshape(-1)
        if values.numel() != self._window_size:
            raise InsufficientHistoryError(
                f"Prediction needs exactly {self._window_size} normalized returns, got {values.numel()}."
            )

        self._state = EngineState.PREDICTING
        try:
            output = regressor.predict(values.reshape(1, self._window_size, 1))
        finally:
            self._state = EngineState.TRAINED
        normalized = [float(v) for v in output.reshape(-1).tolist()]
        return ForecastResult(
            returns=self._normalizer.inverse_transform_many(normalized, self._params),
            normalized=normalized,
        )

    @staticmethod
    def project_prices(last_price: float, forecast: Union[ForecastResult, Sequence[float]]) -> list[float]:
        return project_prices(last_price, forecast)

    def dispose(self) -> None:
        self._reset()
        self.history = None
