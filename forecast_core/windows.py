from __future__ import annotations

import math
from typing import Optional, Sequence

import torch

from .config import ForecastConfig
from .domain.models import DatasetTensors, WindowSplit
from .errors import ConfigError, InsufficientWindowError


def count_windows(length: int, window_size: int, horizon: int) -> int:
    """Number of stride-1 windows with a full target; may be <= 0."""
    return length - window_size - horizon + 1


def resolve_split_index(total_samples: int, test_fraction: float) -> int:
    if total_samples <= 0:
        return 0
    return math.floor(total_samples * (1 - test_fraction))


def _validate_window_args(window_size: int, horizon: int, test_fraction: float) -> None:
    if window_size < 1:
        raise ConfigError(f"window_size must be >= 1, got {window_size}.")
    if horizon < 1:
        raise ConfigError(f"horizon must be >= 1, got {horizon}.")
    if not 0.0 <= test_fraction <= 1.0:
        raise ConfigError(f"test_fraction must be in [0, 1], got {test_fraction}.")


def build_windows(
    normalized: Sequence[float],
    window_size: int = 60,
    horizon: int = 5,
    test_fraction: float = 0.2,
) -> WindowSplit:
    """
    Slice normalized returns into overlapping windows and multi-step targets.

    Window i covers [i, i + window_size) and its target the next `horizon`
    values. Windows before the split index go to train, the rest to test, in
    their original order. An empty train or test side is legal.
    """

    _validate_window_args(window_size, horizon, test_fraction)
    values = [float(v) for v in normalized]
    total_samples = count_windows(len(values), window_size, horizon)
    if total_samples <= 0:
        raise InsufficientWindowError(
            "Not enough data for the specified window size and prediction horizon: "
            f"{len(values)} returns, window_size={window_size}, horizon={horizon}."
        )

    windows: list[list[float]] = []
    targets: list[list[float]] = []
    for i in range(total_samples):
        windows.append(values[i : i + window_size])
        targets.append(values[i + window_size : i + window_size + horizon])

    split_index = resolve_split_index(total_samples, test_fraction)
    return WindowSplit(
        train_windows=windows[:split_index],
        train_targets=targets[:split_index],
        test_windows=windows[split_index:],
        test_targets=targets[split_index:],
        train_indices=list(range(split_index)),
        test_indices=list(range(split_index, total_samples)),
        split_index=split_index,
        total_samples=total_samples,
        window_size=window_size,
        horizon=horizon,
    )


def windows_to_tensor(
    windows: Sequence[Sequence[float]],
    window_size: int,
    *,
    device: Optional[torch.device] = None,
) -> torch.Tensor:
    """Pack windows as float32 [n, window_size, 1]; empty input gives zero rows."""
    data = torch.tensor(list(windows), dtype=torch.float32, device=device)
    return data.reshape(len(windows), window_size, 1)


def targets_to_tensor(
    targets: Sequence[Sequence[float]],
    horizon: int,
    *,
    device: Optional[torch.device] = None,
) -> torch.Tensor:
    data = torch.tensor(list(targets), dtype=torch.float32, device=device)
    return data.reshape(len(targets), horizon)


def to_tensors(split: WindowSplit, *, device: Optional[torch.device] = None) -> DatasetTensors:
    device = device or ForecastConfig.DEVICE
    return DatasetTensors(
        x_train=windows_to_tensor(split.train_windows, split.window_size, device=device),
        y_train=targets_to_tensor(split.train_targets, split.horizon, device=device),
        x_test=windows_to_tensor(split.test_windows, split.window_size, device=device),
        y_test=targets_to_tensor(split.test_targets, split.horizon, device=device),
    )


class WindowBuilder:
    """Window/target builder bound to one window size, horizon and split fraction."""

    def __init__(
        self,
        window_size: int = 60,
        horizon: int = 5,
        test_fraction: float = 0.2,
    ):
        _validate_window_args(window_size, horizon, test_fraction)
        self.window_size = int(window_size)
        self.horizon = int(horizon)
        self.test_fraction = float(test_fraction)

    def build(self, normalized: Sequence[float]) -> WindowSplit:
        return build_windows(
            normalized,
            window_size=self.window_size,
            horizon=self.horizon,
            test_fraction=self.test_fraction,
        )

    def to_tensors(self, split: WindowSplit, *, device: Optional[torch.device] = None) -> DatasetTensors:
        return to_tensors(split, device=device)
