"""Port interfaces for dependency inversion."""

from .interfaces import EpochEndCallback, TextFetcherPort, TrainableRegressorPort

__all__ = [
    "EpochEndCallback",
    "TextFetcherPort",
    "TrainableRegressorPort",
]
