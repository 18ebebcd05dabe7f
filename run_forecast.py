#!/usr/bin/env python
"""
Daily Return Forecast Script (GRU)

Usage:
    python run_forecast.py
    python run_forecast.py --source my_data.csv --epochs 30
"""
import argparse
import asyncio
import sys

from forecast_core.bootstrap import create_forecast_workflow_service
from forecast_core.config import ForecastConfig, PipelineConfig
from forecast_core.errors import ForecastError


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train a GRU on daily returns and forecast the next days.")
    parser.add_argument("--source", default=ForecastConfig.DATA_SOURCE, help="CSV path or http(s) URL")
    parser.add_argument("--epochs", type=int, default=ForecastConfig.EPOCHS)
    parser.add_argument("--batch-size", type=int, default=ForecastConfig.BATCH_SIZE)
    parser.add_argument("--window-size", type=int, default=ForecastConfig.WINDOW_SIZE)
    parser.add_argument("--horizon", type=int, default=ForecastConfig.PREDICTION_HORIZON)
    parser.add_argument("--test-fraction", type=float, default=ForecastConfig.TEST_FRACTION)
    return parser.parse_args(argv)


def print_summary(summary) -> None:
    stats = summary.return_stats
    prices = summary.price_range
    print(f"Total Days:  {summary.total_days}")
    print(f"Date Range:  {summary.date_range}")
    print(f"Price:       min ${prices.min:,.2f} | max ${prices.max:,.2f} | last ${prices.last:,.2f}")
    print(f"Returns:     mean {stats.mean:.4%} | std {stats.std:.4%}")


async def run(args: argparse.Namespace) -> None:
    config = PipelineConfig.from_env().replace(
        window_size=args.window_size,
        horizon=args.horizon,
        test_fraction=args.test_fraction,
        epochs=args.epochs,
        batch_size=args.batch_size,
    )
    service = create_forecast_workflow_service(config=config)
    try:
        print(f"📥 Loading data from {args.source} ...")
        summary = await service.load(args.source)
        print_summary(summary)
        for line in service.split_descriptions():
            print(line)

        def _on_epoch_end(epoch, logs):
            if (epoch + 1) % 10 == 0 or epoch + 1 == config.epochs:
                val = f"{logs.validation_loss:.6f}" if logs.validation_loss is not None else "N/A"
                print(f"\n[train] Epoch {epoch + 1}/{config.epochs} - Loss: {logs.loss:.6f}, Val Loss: {val}")

        print(f"\n🚀 Training GRU for {config.epochs} epochs...")
        outcome = await service.train(on_epoch_end=_on_epoch_end)

        print("\n" + "=" * 60)
        print("✅ Training Complete!")
        print("=" * 60)
        if outcome.metrics is not None:
            m = outcome.metrics
            print(f"Test RMSE: {m.root_mean_squared_error:.6f} | MSE: {m.mean_squared_error:.6f} | Loss: {m.loss:.6f}")
        else:
            print("⚠️  Test split is empty; no held-out metrics.")

        report = service.predict()
        print(f"\n🔮 Forecast for next {len(report.days)} days (last price ${report.last_price:,.2f}):")
        for day in report.days:
            print(f"  Day +{day.day}: {day.predicted_return:+.4%} -> ${day.expected_price:,.2f}")
    finally:
        service.dispose()


def main(argv=None):
    print("=" * 60)
    print("📈 GRU Daily Return Forecaster")
    print("=" * 60)
    print(f"Device: {ForecastConfig.DEVICE}")
    print()

    try:
        args = parse_args(argv)
        asyncio.run(run(args))
    except ForecastError as e:
        print(f"\n❌ Error: {e}")
        print("\nPossible causes:")
        print("  1. Source file/URL unreachable")
        print("  2. Fewer rows than window size + horizon")
        print("  3. Rows not in 'DD.MM.YYYY;price' format")
        sys.exit(1)


if __name__ == "__main__":
    main()
