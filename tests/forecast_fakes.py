from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Optional

import torch


def make_csv(prices: list[float], *, start: date = date(2024, 1, 1), header: str = "Date;Price") -> str:
    """Header + consecutive `DD.MM.YYYY;price` rows."""
    lines = [header]
    for offset, price in enumerate(prices):
        day = start + timedelta(days=offset)
        lines.append(f"{day.strftime('%d.%m.%Y')};{price}")
    return "\n".join(lines) + "\n"


def rising_prices(count: int, start: float = 100.0) -> list[float]:
    return [start + i for i in range(count)]


class FakeRegressor:
    """Deterministic regressor double: predicts a constant normalized vector."""

    def __init__(self, output: Optional[list[float]] = None, *, fail_at_epoch: Optional[int] = None, mse: float = 0.04):
        self.output = output
        self.fail_at_epoch = fail_at_epoch
        self.mse = mse
        self.built_with: Optional[tuple[int, int, Any]] = None
        self.fit_calls = 0
        self.disposed = False
        self.validation_seen: Optional[tuple[torch.Tensor, torch.Tensor]] = None

    def build(self, input_length: int, output_length: int, config) -> None:
        self.built_with = (input_length, output_length, config)

    async def fit(self, x, y, *, epochs, batch_size, validation_data=None, on_epoch_end=None):
        self.fit_calls += 1
        self.validation_seen = validation_data
        history = {"epoch": [], "loss": [], "val_loss": []}
        for epoch in range(epochs):
            if self.fail_at_epoch is not None and epoch == self.fail_at_epoch:
                raise FloatingPointError("loss diverged")
            val_loss = 0.5 / (epoch + 1) if validation_data is not None else None
            logs = {"loss": 1.0 / (epoch + 1), "val_loss": val_loss}
            history["epoch"].append(epoch)
            history["loss"].append(logs["loss"])
            history["val_loss"].append(val_loss)
            if on_epoch_end is not None:
                await on_epoch_end(epoch, logs)
        return history

    def predict(self, x: torch.Tensor) -> torch.Tensor:
        horizon = self.built_with[1]
        values = self.output if self.output is not None else [0.5] * horizon
        return torch.tensor([values] * x.shape[0], dtype=torch.float32)

    def evaluate(self, x, y) -> dict[str, float]:
        return {"loss": self.mse, "mse": self.mse}

    def dispose(self) -> None:
        self.disposed = True
