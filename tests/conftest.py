# tests/conftest.py
from __future__ import annotations

import matplotlib
import numpy as np
import pandas as pd
import pytest

from segment_mlp.data_loader import prepare_survey_data
from segment_mlp.data_split import split_data

matplotlib.use("Agg")

NUMERIC = ["x1", "x2", "x3", "x4", "x5"]
CATEGORICAL = ["region", "channel"]
CODE_TO_SEGMENT = {1: "own", 3: "shopping", 4: "considering"}


def _make_raw_survey(n_rows: int = 100, seed: int = 42) -> pd.DataFrame:
    """Synthetic survey: 3 balanced segments, 5 numeric and 2 categorical predictors.

    ``channel`` holds a single repeated value; the numeric predictors are
    shifted by segment so a small network can pick up the signal.
    """
    rng = np.random.default_rng(seed)
    codes = np.resize([1, 3, 4], n_rows)
    shift = pd.Series(codes).map({1: -1.5, 3: 0.0, 4: 1.5}).to_numpy()

    data = {"CurrentOwned": codes}
    for i, col in enumerate(NUMERIC):
        data[col] = rng.normal(loc=shift * (i % 2 + 1), scale=1.0, size=n_rows)
    data["region"] = rng.choice(["north", "south", "east"], size=n_rows)
    data["channel"] = "online"
    return pd.DataFrame(data)


@pytest.fixture
def raw_survey() -> pd.DataFrame:
    return _make_raw_survey()


@pytest.fixture
def survey_df(raw_survey) -> pd.DataFrame:
    return prepare_survey_data(raw_survey, categorical_features=CATEGORICAL, numeric_features=NUMERIC)


@pytest.fixture
def split(survey_df):
    return split_data(survey_df, prop=0.75, strata="segment", seed=42)


@pytest.fixture
def train_df(split) -> pd.DataFrame:
    return split[0]


@pytest.fixture
def test_df(split) -> pd.DataFrame:
    return split[1]
