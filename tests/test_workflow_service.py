from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Union

import pytest

from forecast_core.bootstrap import create_forecast_workflow_service
from forecast_core.config import PipelineConfig
from forecast_core.errors import (
    DataNotLoadedError,
    FetchError,
    ForecastError,
    InsufficientDataError,
    ModelNotTrainedError,
)
from forecast_fakes import FakeRegressor, make_csv, rising_prices


class _StaticFetcher:
    def __init__(self, texts: dict[str, str]):
        self.texts = texts
        self.calls: list[str] = []

    def fetch_text(self, source: Union[str, Path]) -> str:
        self.calls.append(str(source))
        if str(source) not in self.texts:
            raise FetchError(f"Failed to load data: no such file {source}")
        return self.texts[str(source)]


def _service(texts: dict[str, str], regressors: list[FakeRegressor], config: PipelineConfig | None = None):
    pool = iter(regressors)
    return create_forecast_workflow_service(
        config=config or PipelineConfig(epochs=2),
        fetcher=_StaticFetcher(texts),
        regressor_factory=lambda: next(pool),
    )


def test_operations_before_load_raise() -> None:
    service = _service({}, [])

    assert not service.has_data
    with pytest.raises(DataNotLoadedError):
        service.predict()
    with pytest.raises(DataNotLoadedError):
        asyncio.run(service.train())


def test_load_train_predict_round() -> None:
    service = _service({"a.csv": make_csv(rising_prices(70))}, [FakeRegressor(mse=0.16)])

    summary = asyncio.run(service.load("a.csv"))
    outcome = asyncio.run(service.train())
    report = service.predict()

    assert summary.total_days == 70
    assert len(outcome.history) == 2
    assert outcome.metrics is not None
    assert outcome.metrics.root_mean_squared_error == pytest.approx(0.4)
    assert len(report.days) == 5
    lines = service.split_descriptions()
    assert lines[0].strip().startswith("Samples: 5")
    assert "01.01.2024" in lines[1]


def test_empty_test_split_skips_metrics() -> None:
    service = _service(
        {"a.csv": make_csv(rising_prices(70))},
        [FakeRegressor()],
        PipelineConfig(epochs=1, test_fraction=0.0),
    )
    asyncio.run(service.load("a.csv"))

    outcome = asyncio.run(service.train())

    assert outcome.metrics is None


def test_reload_disposes_previous_session() -> None:
    first, second = FakeRegressor(), FakeRegressor()
    service = _service(
        {"a.csv": make_csv(rising_prices(70)), "b.csv": make_csv(rising_prices(80, start=50.0))},
        [first, second],
    )
    asyncio.run(service.load("a.csv"))
    asyncio.run(service.train())
    old_session = service.session

    summary = asyncio.run(service.load("b.csv"))

    assert summary.total_days == 80
    assert old_session.is_disposed
    assert first.disposed
    assert service.session is not old_session
    # The new session starts untrained.
    with pytest.raises(ModelNotTrainedError):
        service.predict()


def test_failed_load_keeps_current_session() -> None:
    service = _service(
        {"a.csv": make_csv(rising_prices(70)), "short.csv": make_csv(rising_prices(10))},
        [FakeRegressor()],
    )
    asyncio.run(service.load("a.csv"))
    session = service.session

    with pytest.raises(InsufficientDataError):
        asyncio.run(service.load("short.csv"))
    with pytest.raises(FetchError):
        asyncio.run(service.load("missing.csv"))

    assert service.session is session
    assert not session.is_disposed
    assert service.summary().total_days == 70


def test_dispose_clears_session() -> None:
    service = _service({"a.csv": make_csv(rising_prices(70))}, [FakeRegressor()])
    asyncio.run(service.load("a.csv"))

    service.dispose()

    assert not service.has_data
    with pytest.raises(DataNotLoadedError):
        service.summary()


def test_reload_during_training_aborts_the_run() -> None:
    first, second = FakeRegressor(), FakeRegressor()
    service = _service(
        {"a.csv": make_csv(rising_prices(70)), "b.csv": make_csv(rising_prices(80, start=50.0))},
        [first, second],
        PipelineConfig(epochs=50),
    )
    asyncio.run(service.load("a.csv"))
    ended: list[bool] = []

    async def _reload_midway():
        task = asyncio.create_task(service.train(on_train_end=lambda: ended.append(True)))
        await asyncio.sleep(0)
        service.load_text(make_csv(rising_prices(80, start=50.0)))
        with pytest.raises(ForecastError, match="engine disposed"):
            await task

    asyncio.run(_reload_midway())

    assert ended == []
    assert first.disposed
    assert service.summary().total_days == 80
    with pytest.raises(ModelNotTrainedError):
        service.predict()

    outcome = asyncio.run(service.train(epochs=2))
    assert len(outcome.history) == 2
    assert len(service.predict().days) == 5
