import dataclasses
import math

import pandas as pd
import pytest
from sklearn.neural_network import MLPClassifier

from segment_mlp import model as model_module
from segment_mlp.exceptions import ConvergenceFailure, DataAccessError, InvalidHyperparameter, SchemaError
from segment_mlp.model import FittedModel, ModelSpec, build_workflow, fit_model, load_model, predict, save_model

SEGMENTS = {"own", "shopping", "considering"}


@pytest.fixture
def spec():
    return ModelSpec(hidden_units=3, epochs=200, penalty=0.01, seed=42)


@pytest.fixture
def fitted(train_df, spec):
    return fit_model(train_df, spec)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"hidden_units": 0},
        {"hidden_units": 2.5},
        {"hidden_units": True},
        {"epochs": 0},
        {"epochs": -10},
        {"penalty": -0.1},
        {"penalty": math.nan},
        {"penalty": math.inf},
        {"activation": "softsign"},
        {"mode": "regression"},
    ],
)
def test_invalid_spec_raises(kwargs):
    with pytest.raises(InvalidHyperparameter):
        ModelSpec(**kwargs)


def test_spec_maps_to_single_hidden_layer(spec):
    classifier = build_workflow(spec).named_steps["classifier"]
    assert classifier.hidden_layer_sizes == (3,)
    assert classifier.max_iter == 200
    assert classifier.alpha == 0.01
    assert classifier.activation == "logistic"


def test_fit_returns_fitted_model(fitted, spec):
    assert isinstance(fitted, FittedModel)
    assert fitted.spec == spec
    assert fitted.outcome == "segment"
    assert set(fitted.classes) == SEGMENTS


def test_fitted_model_is_immutable(fitted):
    with pytest.raises(dataclasses.FrozenInstanceError):
        fitted.outcome = "other"


def test_recipe_inside_model_uses_training_rows_only(fitted, train_df):
    assert fitted.recipe.means_["x1"] == pytest.approx(train_df["x1"].mean())


def test_predict_aligns_with_input(fitted, test_df):
    predictions = predict(fitted, test_df)
    assert isinstance(predictions, pd.Series)
    assert predictions.index.equals(test_df.index)
    assert set(predictions) <= SEGMENTS
    pd.testing.assert_series_equal(predictions, fitted.predict(test_df))


def test_predict_without_label_column(fitted, test_df):
    predictions = predict(fitted, test_df.drop(columns=["segment"]))
    assert len(predictions) == len(test_df)


def test_fit_is_deterministic(train_df, test_df, spec):
    first = predict(fit_model(train_df, spec), test_df)
    second = predict(fit_model(train_df, spec), test_df)
    pd.testing.assert_series_equal(first, second)


def test_strict_convergence_raises_at_epoch_limit(train_df):
    with pytest.raises(ConvergenceFailure):
        fit_model(train_df, ModelSpec(hidden_units=5, epochs=1), strict_convergence=True)


def test_epoch_limit_is_tolerated_by_default(train_df):
    model = fit_model(train_df, ModelSpec(hidden_units=5, epochs=1))
    assert set(model.classes) == SEGMENTS


def test_missing_outcome_raises(train_df, spec):
    with pytest.raises(SchemaError, match="segment"):
        fit_model(train_df.drop(columns=["segment"]), spec)


def test_save_and_load_round_trip(tmp_path, fitted, test_df):
    path = save_model(fitted, tmp_path / "models" / "model.joblib")
    loaded = load_model(path)
    pd.testing.assert_series_equal(predict(loaded, test_df), predict(fitted, test_df))


def test_load_missing_model_raises(tmp_path):
    with pytest.raises(DataAccessError):
        load_model(tmp_path / "nope.joblib")


class _DivergingMLP(MLPClassifier):
    """Fits normally, then reports a non-finite training loss."""

    def fit(self, X, y):
        super().fit(X, y)
        self.loss_ = float("nan")
        return self


def test_non_finite_loss_raises(train_df, spec, monkeypatch):
    monkeypatch.setattr(model_module, "MLPClassifier", _DivergingMLP)
    with pytest.raises(ConvergenceFailure, match="non-finite"):
        fit_model(train_df, spec)


def test_default_workflow_excludes_segment_label(train_df, spec):
    workflow = build_workflow(spec)
    assert workflow.named_steps["recipe"].outcome == "segment"
    X = train_df.drop(columns=["segment"])
    workflow.fit(X, train_df["segment"])
    assert not any(name.startswith("segment") for name in workflow.named_steps["recipe"].get_feature_names_out())
