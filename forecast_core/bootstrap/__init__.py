"""Composition root utilities."""

from .factories import create_forecast_workflow_service, create_regressor_factory

__all__ = [
    "create_forecast_workflow_service",
    "create_regressor_factory",
]
