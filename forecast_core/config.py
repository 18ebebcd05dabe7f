import os
from dataclasses import dataclass, field, replace as dataclass_replace

import torch

from .errors import ConfigError


def _parse_units(raw_units: str) -> tuple[int, ...]:
    return tuple(int(unit.strip()) for unit in raw_units.split(",") if unit.strip())


class ForecastConfig:
    """Configuration for the daily return forecaster."""
    DEVICE = torch.device("cuda" if torch.cuda.is_available() else "cpu")

    DATA_SOURCE = os.getenv(
        "FORECAST_DATA_SOURCE",
        "https://raw.githubusercontent.com/buschevapoly-del/again/main/my_data.csv",
    )
    FETCH_TIMEOUT = float(os.getenv("FORECAST_FETCH_TIMEOUT", "10"))

    # Windowing defaults
    WINDOW_SIZE = int(os.getenv("WINDOW_SIZE", "60"))
    PREDICTION_HORIZON = int(os.getenv("PREDICTION_HORIZON", "5"))
    TEST_FRACTION = float(os.getenv("TEST_FRACTION", "0.2"))
    # One default window plus one horizon.
    MIN_SERIES_LENGTH = int(os.getenv("MIN_SERIES_LENGTH", "65"))

    # Training defaults
    EPOCHS = int(os.getenv("EPOCHS", "50"))
    BATCH_SIZE = int(os.getenv("BATCH_SIZE", "32"))
    LEARNING_RATE = float(os.getenv("LEARNING_RATE", "0.001"))
    # Epochs between cooperative yields to the event loop.
    YIELD_EVERY = int(os.getenv("YIELD_EVERY", "1"))
    _SEED_RAW = os.getenv("FORECAST_SEED", "").strip()
    SEED = int(_SEED_RAW) if _SEED_RAW else None

    # GRU architecture: stacked recurrent widths, then one dense layer.
    GRU_UNITS = _parse_units(os.getenv("GRU_UNITS", "64,32"))
    DENSE_UNITS = int(os.getenv("DENSE_UNITS", "16"))
    DROPOUT = float(os.getenv("DROPOUT", "0.2"))


@dataclass(frozen=True)
class ArchitectureConfig:
    """Width parameters of the recurrent regressor."""

    gru_units: tuple[int, ...] = (64, 32)
    dense_units: int = 16
    dropout: float = 0.2
    learning_rate: float = 1e-3

    def __post_init__(self) -> None:
        if not self.gru_units:
            raise ConfigError("gru_units must list at least one recurrent layer width.")
        if any(int(units) < 1 for units in self.gru_units):
            raise ConfigError(f"gru_units must all be >= 1, got {self.gru_units}.")
        if self.dense_units < 1:
            raise ConfigError(f"dense_units must be >= 1, got {self.dense_units}.")
        if not 0.0 <= self.dropout < 1.0:
            raise ConfigError(f"dropout must be in [0, 1), got {self.dropout}.")
        if self.learning_rate <= 0:
            raise ConfigError(f"learning_rate must be > 0, got {self.learning_rate}.")


@dataclass(frozen=True)
class PipelineConfig:
    """Validated settings for one prepare -> train -> predict run."""

    window_size: int = 60
    horizon: int = 5
    test_fraction: float = 0.2
    epochs: int = 50
    batch_size: int = 32
    min_series_length: int = 65
    yield_every: int = 1
    architecture: ArchitectureConfig = field(default_factory=ArchitectureConfig)

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ConfigError(f"window_size must be >= 1, got {self.window_size}.")
        if self.horizon < 1:
            raise ConfigError(f"horizon must be >= 1, got {self.horizon}.")
        if not 0.0 <= self.test_fraction <= 1.0:
            raise ConfigError(f"test_fraction must be in [0, 1], got {self.test_fraction}.")
        if self.epochs < 1:
            raise ConfigError(f"epochs must be >= 1, got {self.epochs}.")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1, got {self.batch_size}.")
        if self.min_series_length < 2:
            raise ConfigError(f"min_series_length must be >= 2, got {self.min_series_length}.")
        if self.yield_every < 1:
            raise ConfigError(f"yield_every must be >= 1, got {self.yield_every}.")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls(
            window_size=ForecastConfig.WINDOW_SIZE,
            horizon=ForecastConfig.PREDICTION_HORIZON,
            test_fraction=ForecastConfig.TEST_FRACTION,
            epochs=ForecastConfig.EPOCHS,
            batch_size=ForecastConfig.BATCH_SIZE,
            min_series_length=ForecastConfig.MIN_SERIES_LENGTH,
            yield_every=ForecastConfig.YIELD_EVERY,
            architecture=ArchitectureConfig(
                gru_units=ForecastConfig.GRU_UNITS,
                dense_units=ForecastConfig.DENSE_UNITS,
                dropout=ForecastConfig.DROPOUT,
                learning_rate=ForecastConfig.LEARNING_RATE,
            ),
        )

    def replace(self, **overrides) -> "PipelineConfig":
        """Return a validated copy with `overrides` applied; `None` values are ignored."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclass_replace(self, **changes)
