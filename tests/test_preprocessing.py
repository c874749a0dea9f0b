import numpy as np
import pandas as pd
import pytest
from sklearn.base import clone
from sklearn.exceptions import NotFittedError

from segment_mlp.exceptions import ConfigError, SchemaError
from segment_mlp.preprocessing import Recipe, create_recipe

from conftest import CATEGORICAL, NUMERIC


@pytest.fixture
def recipe(train_df):
    return create_recipe(outcome="segment").fit(train_df)


def test_columns_are_inferred_from_dtypes(recipe):
    assert recipe.categorical_features_ == CATEGORICAL
    assert recipe.numeric_features_ == NUMERIC


def test_outcome_is_excluded(recipe, train_df):
    out = recipe.transform(train_df)
    assert "segment" not in out.columns
    assert not any(col.startswith("segment") for col in out.columns)


def test_dummy_encoding_drops_reference_level(recipe, train_df):
    assert recipe.levels_["region"] == ["east", "north", "south"]
    out = recipe.transform(train_df)
    assert "region_east" not in out.columns
    assert {"region_north", "region_south"} <= set(out.columns)


def test_constant_categorical_is_dropped(recipe, train_df):
    assert "channel" in recipe.dropped_columns_
    out = recipe.transform(train_df)
    assert not any(col.startswith("channel") for col in out.columns)


def test_constant_numeric_is_dropped(train_df):
    train_df = train_df.assign(flat=3.0)
    recipe = create_recipe(outcome="segment").fit(train_df)
    assert "flat" in recipe.dropped_columns_
    assert "flat" not in recipe.transform(train_df).columns


def test_training_output_is_standardized(recipe, train_df):
    out = recipe.transform(train_df)
    assert np.allclose(out.mean(), 0.0, atol=1e-9)
    assert np.allclose(out.std(ddof=0), 1.0, atol=1e-9)


def test_test_set_uses_training_statistics(recipe, train_df, test_df):
    assert recipe.means_["x1"] == pytest.approx(train_df["x1"].mean())
    assert recipe.stds_["x1"] == pytest.approx(train_df["x1"].std(ddof=0))

    out = recipe.transform(test_df)
    expected = (test_df["x1"] - train_df["x1"].mean()) / train_df["x1"].std(ddof=0)
    assert np.allclose(out["x1"], expected)


def test_transform_does_not_refit(recipe, test_df):
    means_before = recipe.means_.copy()
    stds_before = recipe.stds_.copy()
    recipe.transform(test_df)
    pd.testing.assert_series_equal(recipe.means_, means_before)
    pd.testing.assert_series_equal(recipe.stds_, stds_before)


def test_transform_is_idempotent(recipe, test_df):
    first = recipe.transform(test_df)
    second = recipe.transform(test_df)
    pd.testing.assert_frame_equal(first, second)


def test_refitting_on_same_data_is_reproducible(train_df):
    a = create_recipe(outcome="segment").fit(train_df)
    b = create_recipe(outcome="segment").fit(train_df)
    pd.testing.assert_series_equal(a.means_, b.means_)
    pd.testing.assert_series_equal(a.stds_, b.stds_)
    assert a.levels_ == b.levels_
    assert a.dropped_columns_ == b.dropped_columns_


def test_missing_column_on_transform_raises(recipe, test_df):
    with pytest.raises(SchemaError, match="x2"):
        recipe.transform(test_df.drop(columns=["x2"]))


def test_zero_std_at_apply_time_raises(recipe, test_df):
    recipe.pipeline_.named_steps["normalize"].var_[0] = 0.0
    with pytest.raises(ConfigError, match="Zero standard deviation"):
        recipe.transform(test_df)


def test_all_constant_predictors_raise(train_df):
    constant = pd.DataFrame({"a": [1.0] * 10, "b": [2.0] * 10})
    with pytest.raises(ConfigError):
        Recipe().fit(constant)


def test_transform_before_fit_raises(test_df):
    with pytest.raises(NotFittedError):
        create_recipe(outcome="segment").transform(test_df)


def test_recipe_can_be_cloned():
    recipe = create_recipe(CATEGORICAL, NUMERIC, "segment")
    cloned = clone(recipe)
    assert cloned.get_params() == recipe.get_params()


def test_default_recipe_excludes_segment_label(train_df):
    recipe = create_recipe().fit(train_df)
    assert "segment" not in recipe.categorical_features_
    assert not any(name.startswith("segment") for name in recipe.get_feature_names_out())


def test_outcome_none_treats_every_column_as_predictor(train_df):
    recipe = create_recipe(outcome=None).fit(train_df.drop(columns=["segment"]))
    assert recipe.categorical_features_ == CATEGORICAL
