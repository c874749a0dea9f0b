# segment_mlp/model.py

"""
Model specification and fitting for the segment classifier.

The classifier is a single-hidden-layer feed-forward network
(scikit-learn's MLPClassifier) placed behind the feature recipe in one
scikit-learn Pipeline, so anything that fits the pipeline (a plain fit or a
cross-validation fold) also re-fits the recipe on exactly the same rows.
"""

import logging
import math
import numbers
import warnings
from dataclasses import dataclass, field
from pathlib import Path

import joblib
import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier
from sklearn.pipeline import Pipeline

from segment_mlp import config
from segment_mlp.exceptions import ConvergenceFailure, DataAccessError, InvalidHyperparameter, SchemaError
from segment_mlp.preprocessing import create_recipe

ACTIVATIONS = ('identity', 'logistic', 'tanh', 'relu')


@dataclass(frozen=True)
class ModelSpec:
    """Network type, hyperparameters and task mode for one fit."""
    hidden_units: int = config.HIDDEN_UNITS
    epochs: int = config.EPOCHS
    penalty: float = config.PENALTY
    activation: str = config.ACTIVATION
    mode: str = 'classification'
    seed: int = config.RANDOM_STATE

    def __post_init__(self):
        validate_hyperparameters(self.hidden_units, self.epochs, self.penalty)
        if self.activation not in ACTIVATIONS:
            raise InvalidHyperparameter(f"activation must be one of {ACTIVATIONS}, got {self.activation!r}")
        if self.mode != 'classification':
            raise InvalidHyperparameter(f"Only 'classification' mode is supported, got {self.mode!r}")

    def classifier_params(self) -> dict:
        """Keyword arguments for MLPClassifier."""
        return {
            'hidden_layer_sizes': (int(self.hidden_units),),
            'max_iter': int(self.epochs),
            'alpha': float(self.penalty),
            'activation': self.activation,
            'solver': 'lbfgs',
            'random_state': self.seed,
        }


def validate_hyperparameters(hidden_units, epochs, penalty):
    """Raises InvalidHyperparameter unless all three values are in range."""
    for name, value in (('hidden_units', hidden_units), ('epochs', epochs)):
        if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
            raise InvalidHyperparameter(f"{name} must be an integer >= 1, got {value!r}")
    if isinstance(penalty, bool) or not isinstance(penalty, numbers.Real) \
            or not math.isfinite(penalty) or penalty < 0:
        raise InvalidHyperparameter(f"penalty must be a finite number >= 0, got {penalty!r}")


@dataclass(frozen=True)
class FittedModel:
    """A trained recipe + network pipeline. Only used for prediction."""
    workflow: Pipeline
    spec: ModelSpec
    outcome: str
    classes: tuple = field(default=())

    @property
    def recipe(self):
        return self.workflow.named_steps['recipe']

    def predict(self, data: pd.DataFrame) -> pd.Series:
        return predict(self, data)


def build_workflow(spec: ModelSpec, categorical_features: list[str] = None,
                   numeric_features: list[str] = None,
                   outcome: str = config.TARGET_VARIABLE) -> Pipeline:
    """Recipe followed by the network, as one unfitted scikit-learn Pipeline."""
    return Pipeline(steps=[
        ('recipe', create_recipe(categorical_features, numeric_features, outcome)),
        ('classifier', MLPClassifier(**spec.classifier_params())),
    ])


def split_outcome(data: pd.DataFrame, outcome: str) -> tuple[pd.DataFrame, np.ndarray]:
    if outcome not in data.columns:
        raise SchemaError(f"Outcome column '{outcome}' not found in data")
    return data.drop(columns=[outcome]), np.asarray(data[outcome])


def fit_model(
    train_df: pd.DataFrame,
    spec: ModelSpec,
    outcome: str = config.TARGET_VARIABLE,
    categorical_features: list[str] = None,
    numeric_features: list[str] = None,
    strict_convergence: bool = False,
) -> FittedModel:
    """
    Fits the recipe and the network on the training data.

    Reaching the epoch limit before the optimizer converges is logged; with
    ``strict_convergence=True`` it raises instead. A fit whose loss is not
    finite always raises. Nothing is retried.

    Raises:
        ConvergenceFailure: If the optimizer fails (see above).
        SchemaError: If the outcome or a predictor column is missing.
    """
    X, y = split_outcome(train_df, outcome)
    workflow = build_workflow(spec, categorical_features, numeric_features, outcome)

    logging.info(
        f"Fitting MLP (hidden_units={spec.hidden_units}, epochs={spec.epochs}, "
        f"penalty={spec.penalty:g}) on {len(X)} rows..."
    )
    with warnings.catch_warnings():
        warnings.simplefilter('error' if strict_convergence else 'ignore', ConvergenceWarning)
        try:
            workflow.fit(X, y)
        except ConvergenceWarning as exc:
            raise ConvergenceFailure(f"Optimizer did not converge within {spec.epochs} epochs: {exc}") from exc

    classifier = workflow.named_steps['classifier']
    if not np.isfinite(classifier.loss_):
        raise ConvergenceFailure(f"Optimizer produced a non-finite loss ({classifier.loss_})")
    if classifier.n_iter_ >= spec.epochs:
        logging.warning(f"Optimizer stopped at the epoch limit ({spec.epochs}) before converging")

    logging.info(f"Model training complete. Final loss: {classifier.loss_:.4f}")
    return FittedModel(
        workflow=workflow,
        spec=spec,
        outcome=outcome,
        classes=tuple(classifier.classes_),
    )


def predict(model: FittedModel, data: pd.DataFrame) -> pd.Series:
    """Predicted segment for every row, aligned to ``data.index``."""
    predictions = model.workflow.predict(data)
    return pd.Series(predictions, index=data.index, name='.pred_class')


def save_model(model: FittedModel, path: Path = config.CLASSIFICATION_MODEL_FILE) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(model, path)
    logging.info(f"Model saved to {path}")
    return path


def load_model(path: Path = config.CLASSIFICATION_MODEL_FILE) -> FittedModel:
    path = Path(path)
    if not path.exists():
        raise DataAccessError(f"Model not found at {path}. Please train a model first.")
    return joblib.load(path)
