from __future__ import annotations

import asyncio
import math

import pytest
import torch

from forecast_core.config import ArchitectureConfig, PipelineConfig
from forecast_core.errors import DatasetReleasedError, ModelNotTrainedError
from forecast_core.gru import GRURegressor
from forecast_core.pipeline import PipelineSession
from forecast_fakes import FakeRegressor, make_csv, rising_prices


def _session(regressor: FakeRegressor | None = None, prices: list[float] | None = None) -> PipelineSession:
    regressor = regressor or FakeRegressor()
    return PipelineSession.from_text(
        make_csv(prices or rising_prices(70)),
        PipelineConfig(epochs=2),
        regressor_factory=lambda: regressor,
    )


def test_seventy_rows_give_expected_tensor_shapes() -> None:
    session = _session()

    tensors = session.tensors

    assert tuple(tensors.x_train.shape) == (4, 60, 1)
    assert tuple(tensors.y_train.shape) == (4, 5)
    assert tuple(tensors.x_test.shape) == (1, 60, 1)
    assert tuple(tensors.y_test.shape) == (1, 5)
    assert len(session.latest_window()) == 60


def test_summary_and_historical() -> None:
    session = _session(prices=[100.0, 110.0, 99.0] + rising_prices(67, start=100.0))

    summary = session.summary()
    historical = session.historical()

    assert summary.total_days == 70
    assert summary.start_label == "01.01.2024"
    assert summary.price_range.min == 99.0
    assert summary.price_range.last == 166.0
    assert summary.return_stats.max == pytest.approx(0.1)
    assert summary.return_stats.min == pytest.approx(-0.1)
    assert len(historical.labels) == len(historical.prices) == 70
    assert len(historical.returns) == len(historical.normalized_returns) == 69
    assert min(historical.normalized_returns) == 0.0
    assert max(historical.normalized_returns) == pytest.approx(1.0)


def test_train_then_predict_builds_report() -> None:
    regressor = FakeRegressor(output=[0.5] * 5)
    session = _session(regressor)

    with pytest.raises(ModelNotTrainedError):
        session.predict()

    history = asyncio.run(session.train(epochs=3))
    report = session.predict()

    assert len(history) == 3
    assert regressor.built_with[:2] == (60, 5)
    assert report.last_price == 169.0
    assert [d.day for d in report.days] == [1, 2, 3, 4, 5]
    params = session.dataset.params
    expected = 0.5 * params.range + params.min
    assert report.returns == pytest.approx([expected] * 5)
    assert report.prices[0] == pytest.approx(169.0 * (1 + expected))
    assert report.prices[-1] == pytest.approx(169.0 * (1 + expected) ** 5)


def test_evaluate_after_training() -> None:
    session = _session(FakeRegressor(mse=0.09))
    asyncio.run(session.train())

    metrics = session.evaluate()

    assert metrics.root_mean_squared_error == pytest.approx(0.3)


def test_dispose_releases_everything() -> None:
    regressor = FakeRegressor()
    session = _session(regressor)
    asyncio.run(session.train())

    session.dispose()
    session.dispose()

    assert session.is_disposed
    assert regressor.disposed
    with pytest.raises(DatasetReleasedError):
        _ = session.tensors
    with pytest.raises(DatasetReleasedError):
        session.summary()


def test_session_trains_and_predicts_with_real_gru() -> None:
    config = PipelineConfig(
        epochs=2,
        batch_size=2,
        architecture=ArchitectureConfig(gru_units=(4,), dense_units=2, dropout=0.0),
    )
    session = PipelineSession.from_text(
        make_csv([100.0 * (1.0 + 0.01 * ((i % 7) - 3)) for i in range(70)]),
        config,
        regressor_factory=lambda: GRURegressor(torch.device("cpu"), seed=11, show_progress=False),
    )
    epochs_seen: list[int] = []

    history = asyncio.run(session.train(on_epoch_end=lambda epoch, logs: epochs_seen.append(epoch)))
    metrics = session.evaluate()
    report = session.predict()

    assert epochs_seen == [0, 1]
    assert len(history) == 2
    assert all(math.isfinite(loss) for loss in history.loss)
    assert all(math.isfinite(r) for r in report.returns)
