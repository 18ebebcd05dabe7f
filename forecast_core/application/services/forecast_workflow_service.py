from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from forecast_core.config import PipelineConfig
from forecast_core.domain.models import (
    DataSummary,
    EvaluationMetrics,
    ForecastReport,
    HistoricalSeries,
    TrainingHistory,
)
from forecast_core.engine import OnEpochEnd, OnTrainEnd
from forecast_core.errors import DataNotLoadedError
from forecast_core.pipeline import PipelineSession
from forecast_core.ports.interfaces import TextFetcherPort, TrainableRegressorPort


@dataclass
class TrainingOutcome:
    """Structured output of a training run."""

    history: TrainingHistory
    metrics: Optional[EvaluationMetrics]


class ForecastWorkflowService:
    """High-level load -> train -> evaluate -> predict workflow."""

    def __init__(
        self,
        *,
        fetcher: TextFetcherPort,
        config: Optional[PipelineConfig] = None,
        regressor_factory: Optional[Callable[[], TrainableRegressorPort]] = None,
    ):
        self.fetcher = fetcher
        self.config = config or PipelineConfig.from_env()
        self.regressor_factory = regressor_factory
        self._session: Optional[PipelineSession] = None

    @property
    def session(self) -> PipelineSession:
        if self._session is None:
            raise DataNotLoadedError("No data available. Load data first.")
        return self._session

    @property
    def has_data(self) -> bool:
        return self._session is not None

    async def load(self, source: Union[str, Path]) -> DataSummary:
        text = await asyncio.to_thread(self.fetcher.fetch_text, source)
        return self.load_text(text)

    def load_text(self, text: str) -> DataSummary:
        # Build the replacement first so a failed load keeps the current session.
        session = PipelineSession.from_text(
            text,
            self.config,
            regressor_factory=self.regressor_factory,
        )
        previous, self._session = self._session, session
        if previous is not None:
            previous.dispose()
        return session.summary()

    async def train(
        self,
        *,
        epochs: Optional[int] = None,
        batch_size: Optional[int] = None,
        on_epoch_end: Optional[OnEpochEnd] = None,
        on_train_end: Optional[OnTrainEnd] = None,
    ) -> TrainingOutcome:
        session = self.session
        history = await session.train(
            epochs=epochs,
            batch_size=batch_size,
            on_epoch_end=on_epoch_end,
            on_train_end=on_train_end,
        )
        metrics = None
        if session.tensors.x_test.shape[0] > 0:
            metrics = session.evaluate()
        return TrainingOutcome(history=history, metrics=metrics)

    def evaluate(self) -> EvaluationMetrics:
        return self.session.evaluate()

    def predict(self) -> ForecastReport:
        return self.session.predict()

    def summary(self) -> DataSummary:
        return self.session.summary()

    def historical(self) -> HistoricalSeries:
        return self.session.historical()

    def split_descriptions(self) -> list[str]:
        """Return printable split descriptions for CLI logs."""

        split = self.session.dataset.split
        points = self.session.dataset.points
        lines = [f"   Samples: {split.total_samples} (window={split.window_size}, horizon={split.horizon})"]
        # Window i ends at return i + window_size - 1, i.e. price index i + window_size.
        if split.train_indices:
            first, last = split.train_indices[0], split.train_indices[-1]
            lines.append(
                f"   Train windows: {len(split.train_indices)} | "
                f"{points[first].label} -> {points[last + split.window_size].label}"
            )
        if split.test_indices:
            first, last = split.test_indices[0], split.test_indices[-1]
            lines.append(
                f"   Test windows:  {len(split.test_indices)} | "
                f"{points[first].label} -> {points[last + split.window_size].label}"
            )
        return lines

    def dispose(self) -> None:
        if self._session is not None:
            self._session.dispose()
            self._session = None
