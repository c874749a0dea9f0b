# segment_mlp/evaluation.py

import logging

import pandas as pd
from sklearn.metrics import accuracy_score, classification_report

from segment_mlp import config
from segment_mlp.exceptions import InsufficientData, SchemaError
from segment_mlp.model import FittedModel, predict


def augment(model: FittedModel, data: pd.DataFrame) -> pd.DataFrame:
    """Returns a copy of ``data`` with the predicted segment in a ``.pred_class`` column."""
    augmented = data.copy()
    augmented['.pred_class'] = predict(model, data)
    return augmented


def _truth_and_predictions(model: FittedModel, data: pd.DataFrame, truth: str):
    if truth not in data.columns:
        raise SchemaError(f"Truth column '{truth}' not found in evaluation data")
    if data.empty:
        raise InsufficientData("Cannot evaluate a model on an empty dataset")
    y_true = data[truth].astype(str)
    y_pred = predict(model, data).astype(str)
    return y_true, y_pred


def evaluate_model(model: FittedModel, data: pd.DataFrame, truth: str = config.TARGET_VARIABLE) -> float:
    """
    Accuracy of a fitted model on ``data``.

    The data goes through the recipe stored in the model, so raw rows (test
    set or new data) can be passed as they are. ``truth`` names the column
    holding the true labels and is looked up in ``data`` at call time, so the
    same function works for any label column.

    Args:
        model (FittedModel): The trained recipe + network.
        data (pd.DataFrame): Rows to score, including the ``truth`` column.
        truth (str): Name of the true-label column.

    Returns:
        float: Fraction of rows whose predicted label equals the true label.
    """
    y_true, y_pred = _truth_and_predictions(model, data, truth)
    accuracy = float(accuracy_score(y_true, y_pred))
    logging.info(f"Evaluation complete. Accuracy: {accuracy:.4f}")
    return accuracy


def classification_summary(model: FittedModel, data: pd.DataFrame, truth: str = config.TARGET_VARIABLE) -> dict:
    """Accuracy plus scikit-learn's per-class classification report."""
    y_true, y_pred = _truth_and_predictions(model, data, truth)
    report = classification_report(y_true, y_pred, output_dict=True, zero_division=0)
    return {"accuracy": float(accuracy_score(y_true, y_pred)), "classification_report": report}
