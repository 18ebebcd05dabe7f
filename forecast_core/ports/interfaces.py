from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import torch

from forecast_core.config import ArchitectureConfig

EpochEndCallback = Callable[[int, dict[str, Optional[float]]], Union[None, Awaitable[None]]]


class TrainableRegressorPort(Protocol):
    """Black-box sequence regressor: [n, input_length, 1] -> [n, output_length]."""

    def build(self, input_length: int, output_length: int, config: ArchitectureConfig) -> None:
        ...

    async def fit(
        self,
        x: torch.Tensor,
        y: torch.Tensor,
        *,
        epochs: int,
        batch_size: int,
        validation_data: Optional[tuple[torch.Tensor, torch.Tensor]] = None,
        on_epoch_end: Optional[EpochEndCallback] = None,
    ) -> dict[str, list[Any]]:
        ...

    def predict(self, x: torch.Tensor) -> torch.Tensor:
        ...

    def evaluate(self, x: torch.Tensor, y: torch.Tensor) -> dict[str, float]:
        ...

    def dispose(self) -> None:
        ...


class TextFetcherPort(Protocol):
    """Raw-data access contract; failures surface as `FetchError`."""

    def fetch_text(self, source: Union[str, Path]) -> str:
        ...
