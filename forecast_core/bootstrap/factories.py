from __future__ import annotations

from typing import Callable, Optional

from forecast_core.application.services import ForecastWorkflowService
from forecast_core.config import ForecastConfig, PipelineConfig
from forecast_core.data.io import TextFetcher
from forecast_core.gru import GRURegressor
from forecast_core.ports.interfaces import TextFetcherPort, TrainableRegressorPort


def create_regressor_factory(
    *,
    seed: Optional[int] = None,
    show_progress: bool = True,
) -> Callable[[], TrainableRegressorPort]:
    """Factory producing fresh GRU regressors on the configured device."""

    def _factory() -> TrainableRegressorPort:
        return GRURegressor(ForecastConfig.DEVICE, seed=seed, show_progress=show_progress)

    return _factory


def create_forecast_workflow_service(
    *,
    config: Optional[PipelineConfig] = None,
    fetcher: Optional[TextFetcherPort] = None,
    regressor_factory: Optional[Callable[[], TrainableRegressorPort]] = None,
    show_progress: bool = True,
) -> ForecastWorkflowService:
    """Build the application-level forecasting workflow from the composition root."""

    return ForecastWorkflowService(
        fetcher=fetcher or TextFetcher(),
        config=config or PipelineConfig.from_env(),
        regressor_factory=regressor_factory or create_regressor_factory(show_progress=show_progress),
    )
