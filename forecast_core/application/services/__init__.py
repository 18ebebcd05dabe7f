"""Forecasting workflow services."""

from .forecast_workflow_service import ForecastWorkflowService, TrainingOutcome

__all__ = [
    "ForecastWorkflowService",
    "TrainingOutcome",
]
