"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable, Generator, Sequence

import pandas as pd
import pytest

from plotdots.core.config import get_settings


def make_frame(
    values: Sequence[float],
    start: str = "2024-01-01",
    freq: str = "MS",
    category: str | None = None,
) -> pd.DataFrame:
    """Build a monthly input table with `month` and `value` columns."""
    frame = pd.DataFrame({
        "month": pd.date_range(start, periods=len(values), freq=freq),
        "value": list(values),
    })
    if category is not None:
        frame["ward"] = category
    return frame


@pytest.fixture
def frame_factory() -> Callable[..., pd.DataFrame]:
    return make_frame


@pytest.fixture
def outlier_example() -> pd.DataFrame:
    """Ten monthly points with one low outlier at position 8."""
    return make_frame([10, 10, 10, 10, 10, 10, 10, 10, 9, 10])


@pytest.fixture
def shift_example() -> pd.DataFrame:
    """Noisy series with a run of seven points above the mean at positions 4-10."""
    return make_frame([5, -5, 5, -5, 1, 2, 1, 2, 1, 2, 1, -5, 5, -5])


@pytest.fixture
def multi_category() -> pd.DataFrame:
    """Three wards, interleaved rows, with an extra pass-through column."""
    frames = [
        make_frame([12, 14, 13, 15, 14, 13, 30, 14], category="A"),
        make_frame([5, 5, 6, 5, 4, 5, 6, 5], category="B"),
        make_frame([100, 90, 95, 85, 80, 75, 70, 65], category="C"),
    ]
    combined = pd.concat(frames, ignore_index=True)
    combined["note"] = [f"row-{i}" for i in range(len(combined))]
    # Interleave categories so input order differs from (category, date) order
    return combined.iloc[combined.groupby("ward").cumcount().argsort(kind="mergesort")]


@pytest.fixture
def clean_settings() -> Generator[None, None, None]:
    """Clear the cached settings before and after a test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
