import inspect
import math
from typing import Any, Optional

import torch
import torch.nn as nn
import torch.nn.functional as F
from tqdm import tqdm

from .config import ArchitectureConfig, ForecastConfig
from .errors import ModelNotBuiltError, NoTrainingDataError
from .ports.interfaces import EpochEndCallback


class GRUForecaster(nn.Module):
    """
    Stacked GRU regressor for multi-step return forecasting.

    Input is a window of normalized returns [Batch, SeqLen, 1]. Each GRU layer
    sees dropout on its inputs; only the last hidden state of the final layer
    feeds the dense head, which emits one value per forecast day.

    Args:
        input_length: Window size (SeqLen).
        output_length: Forecast horizon.
        gru_units: Hidden widths of the stacked GRU layers, bottom first.
        dense_units: Width of the ReLU layer before the linear output.
        dropout: Input dropout rate applied before every GRU layer.
    """

    def __init__(
        self,
        input_length: int,
        output_length: int,
        gru_units: tuple[int, ...] = (64, 32),
        dense_units: int = 16,
        dropout: float = 0.2,
    ):
        super().__init__()
        self.input_length = input_length
        self.output_length = output_length

        layers = []
        in_features = 1
        for units in gru_units:
            layers.append(nn.GRU(in_features, units, batch_first=True))
            in_features = units
        self.recurrent = nn.ModuleList(layers)
        self.dropout = nn.Dropout(dropout)
        self.dense = nn.Linear(in_features, dense_units)
        self.head = nn.Linear(dense_units, output_length)
        self.reset_parameters()

    @torch.no_grad()
    def reset_parameters(self) -> None:
        # Glorot input kernels, orthogonal recurrent kernels, He-normal hidden dense.
        for gru in self.recurrent:
            for name, param in gru.named_parameters():
                if name.startswith("weight_ih"):
                    nn.init.xavier_uniform_(param)
                elif name.startswith("weight_hh"):
                    nn.init.orthogonal_(param)
                elif name.startswith("bias"):
                    nn.init.zeros_(param)
        nn.init.kaiming_normal_(self.dense.weight, nonlinearity="relu")
        nn.init.zeros_(self.dense.bias)
        nn.init.xavier_uniform_(self.head.weight)
        nn.init.zeros_(self.head.bias)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        # x: [Batch, SeqLen, 1]
        out = x
        for gru in self.recurrent:
            out, _ = gru(self.dropout(out))
        last = out[:, -1, :]  # [Batch, Units]
        hidden = F.relu(self.dense(last))
        return self.head(hidden)  # [Batch, Horizon]


class GRURegressor:
    """Trainable-regressor adapter around `GRUForecaster` (Adam + MSE)."""

    def __init__(
        self,
        device: Optional[torch.device] = None,
        *,
        seed: Optional[int] = None,
        show_progress: bool = True,
    ):
        self.device = device or ForecastConfig.DEVICE
        self.seed = ForecastConfig.SEED if seed is None else seed
        self.show_progress = show_progress
        self.model: Optional[GRUForecaster] = None
        self.optimizer: Optional[torch.optim.Optimizer] = None

    def build(self, input_length: int, output_length: int, config: ArchitectureConfig) -> None:
        self.dispose()
        if self.seed is not None:
            torch.manual_seed(self.seed)
        self.model = GRUForecaster(
            input_length,
            output_length,
            gru_units=tuple(config.gru_units),
            dense_units=config.dense_units,
            dropout=config.dropout,
        ).to(self.device)
        self.optimizer = torch.optim.Adam(self.model.parameters(), lr=config.learning_rate)
        n_params = sum(p.numel() for p in self.model.parameters())
        print(
            f"[model] GRU {list(config.gru_units)} -> dense {config.dense_units} -> "
            f"{output_length} | window={input_length} params={n_params}"
        )

    def _require_model(self) -> GRUForecaster:
        if self.model is None or self.optimizer is None:
            raise ModelNotBuiltError("Model not built. Call build() first.")
        return self.model

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
        model = self._require_model()
        # Bound for the whole run; dispose() mid-run only releases the references held here.
        optimizer = self.optimizer
        x = x.to(self.device)
        y = y.to(self.device)
        n_samples = int(x.shape[0])
        if n_samples == 0:
            raise NoTrainingDataError("Training data not provided.")
        if validation_data is not None and int(validation_data[0].shape[0]) == 0:
            validation_data = None

        history: dict[str, list[Any]] = {"epoch": [], "loss": [], "val_loss": []}
        pbar = tqdm(range(epochs), disable=not self.show_progress)
        for epoch in pbar:
            train_loss = self._train_epoch(model, optimizer, x, y, batch_size=batch_size)
            if not math.isfinite(train_loss):
                raise FloatingPointError(f"Non-finite training loss at epoch {epoch}: {train_loss}")

            val_loss: Optional[float] = None
            if validation_data is not None:
                val_loss = self._mse(model, validation_data[0], validation_data[1])

            history["epoch"].append(epoch)
            history["loss"].append(train_loss)
            history["val_loss"].append(val_loss)
            postfix = {"Loss": f"{train_loss:.6f}"}
            if val_loss is not None:
                postfix["ValLoss"] = f"{val_loss:.6f}"
            pbar.set_postfix(postfix)

            if on_epoch_end is not None:
                pending = on_epoch_end(epoch, {"loss": train_loss, "val_loss": val_loss})
                if inspect.isawaitable(pending):
                    await pending
        return history

    def _train_epoch(
        self,
        model: GRUForecaster,
        optimizer: torch.optim.Optimizer,
        x: torch.Tensor,
        y: torch.Tensor,
        *,
        batch_size: int,
    ) -> float:
        model.train()
        n_samples = int(x.shape[0])
        # Shuffles within the train split only; the split itself stays chronological.
        perm = torch.randperm(n_samples, device=x.device)
        total = 0.0
        for start in range(0, n_samples, batch_size):
            idx = perm[start : start + batch_size]
            pred = model(x[idx])
            loss = F.mse_loss(pred, y[idx])
            optimizer.zero_grad()
            loss.backward()
            optimizer.step()
            total += float(loss.item()) * int(idx.numel())
        return total / n_samples

    @torch.no_grad()
    def _mse(self, model: GRUForecaster, x: torch.Tensor, y: torch.Tensor) -> float:
        model.eval()
        pred = model(x.to(self.device))
        return float(F.mse_loss(pred, y.to(self.device)).item())

    @torch.no_grad()
    def predict(self, x: torch.Tensor) -> torch.Tensor:
        model = self._require_model()
        model.eval()
        return model(x.to(self.device)).detach().cpu()

    def evaluate(self, x: torch.Tensor, y: torch.Tensor) -> dict[str, float]:
        model = self._require_model()
        mse = self._mse(model, x, y)
        return {"loss": mse, "mse": mse}

    def dispose(self) -> None:
        self.model = None
        self.optimizer = None
