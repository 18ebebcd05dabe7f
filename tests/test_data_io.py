from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
import requests

from forecast_core.data import io as data_io
from forecast_core.data.io import TextFetcher, fetch_text, is_url, read_text_any_encoding, safe_to_datetime
from forecast_core.errors import FetchError


class _FakeResponse:
    def __init__(self, text: str, status: int = 200):
        self.text = text
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_read_text_any_encoding_falls_back_to_latin1(tmp_path: Path) -> None:
    path = tmp_path / "prices.csv"
    path.write_bytes("Date;Price\n01.01.2024;10\n# café\n".encode("latin-1"))

    text = read_text_any_encoding(path)

    assert text.startswith("Date;Price")
    assert "café" in text


def test_fetch_text_reads_local_file(tmp_path: Path) -> None:
    path = tmp_path / "prices.csv"
    path.write_text("Date;Price\n01.01.2024;10\n", encoding="utf-8")

    assert fetch_text(path) == "Date;Price\n01.01.2024;10\n"
    assert TextFetcher().fetch_text(str(path)) == "Date;Price\n01.01.2024;10\n"


def test_fetch_text_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FetchError, match="no such file"):
        fetch_text(tmp_path / "missing.csv")


def test_fetch_text_uses_requests_for_urls(monkeypatch) -> None:
    calls: list[tuple[str, float]] = []

    def _fake_get(url, timeout):
        calls.append((url, timeout))
        return _FakeResponse("Date;Price\n01.01.2024;10\n")

    monkeypatch.setattr(data_io.requests, "get", _fake_get)

    text = TextFetcher(timeout=3).fetch_text("https://example.com/prices.csv")

    assert text.startswith("Date;Price")
    assert calls == [("https://example.com/prices.csv", 3.0)]


def test_fetch_text_wraps_http_errors(monkeypatch) -> None:
    monkeypatch.setattr(data_io.requests, "get", lambda url, timeout: _FakeResponse("", status=404))

    with pytest.raises(FetchError, match="Failed to load data"):
        fetch_text("http://example.com/missing.csv")


def test_is_url_and_safe_to_datetime() -> None:
    assert is_url("  HTTPS://example.com/a.csv")
    assert not is_url("data/a.csv")

    dt = safe_to_datetime(pd.Series(["2024-01-02", "bad"]))

    assert str(dt.iloc[0].date()) == "2024-01-02"
    assert pd.isna(dt.iloc[1])
