import sys
from pathlib import Path

import matplotlib
import numpy as np
import pandas as pd
import pytest

matplotlib.use("Agg")

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


def _series(wbal, start="2001-06-01", freq="D"):
    return pd.DataFrame({
        "time": pd.date_range(start, periods=len(wbal), freq=freq),
        "wbal": np.asarray(wbal, dtype=float),
    })


@pytest.fixture
def make_series():
    """Factory for water balance frames with regular timestamps."""
    return _series


@pytest.fixture
def reference_series():
    """Seven-day series with two events under thresh_drop=0.5."""
    return _series([-5, -3, 2, -10, 15, -1, -1])
