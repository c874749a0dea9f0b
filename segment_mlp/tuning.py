# segment_mlp/tuning.py

import itertools
import json
import logging
import math
import numbers
import warnings
from dataclasses import dataclass, replace
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.model_selection import GridSearchCV, StratifiedKFold

from segment_mlp import config
from segment_mlp.exceptions import ConfigError, InsufficientData, InvalidHyperparameter
from segment_mlp.model import FittedModel, ModelSpec, build_workflow, fit_model, split_outcome, validate_hyperparameters

# Tunable ModelSpec field -> MLPClassifier parameter inside the workflow
TUNABLE_PARAMS = {
    'hidden_units': 'classifier__hidden_layer_sizes',
    'penalty': 'classifier__alpha',
    'epochs': 'classifier__max_iter',
}


@dataclass(frozen=True)
class TuningResult:
    """
    Cross-validation results for every hyperparameter combination.

    ``metrics`` has one row per combination and fold; ``summary`` has one row
    per combination, in grid enumeration order, with the mean, standard error
    and number of folds.
    """
    metrics: pd.DataFrame
    summary: pd.DataFrame
    metric: str
    params: tuple

    @property
    def best_params(self) -> dict:
        return select_best(self)


def expand_grid(**values) -> pd.DataFrame:
    """
    Every combination of the given hyperparameter values, the last argument
    varying fastest.

    Example:
        >>> expand_grid(hidden_units=[1, 5], penalty=[0.0, 0.1]).shape
        (4, 2)
    """
    unknown = [name for name in values if name not in TUNABLE_PARAMS]
    if unknown:
        raise InvalidHyperparameter(f"Cannot tune {unknown}; tunable parameters are {list(TUNABLE_PARAMS)}")
    combos = list(itertools.product(*values.values()))
    grid = pd.DataFrame(combos, columns=list(values))
    _grid_records(grid)  # validate
    return grid


def regular_grid(
    levels: int = config.GRID_LEVELS,
    hidden_units: tuple = config.HIDDEN_UNITS_RANGE,
    penalty: tuple = config.PENALTY_RANGE,
    epochs: tuple = config.EPOCHS_RANGE,
) -> pd.DataFrame:
    """
    A regular grid with ``levels`` evenly spaced values per parameter.

    Hidden units and epochs are spaced linearly and rounded to integers
    (duplicates after rounding are removed); the penalty is spaced on a log10
    scale, so its range must be strictly positive.
    """
    if levels < 1:
        raise InvalidHyperparameter(f"levels must be >= 1, got {levels}")
    if penalty[0] <= 0 or penalty[1] <= 0:
        raise InvalidHyperparameter(f"penalty range must be positive for log spacing, got {penalty}")

    def _int_levels(bounds):
        return [int(v) for v in np.unique(np.round(np.linspace(bounds[0], bounds[1], levels)))]

    return expand_grid(
        hidden_units=_int_levels(hidden_units),
        penalty=[float(v) for v in np.logspace(math.log10(penalty[0]), math.log10(penalty[1]), levels)],
        epochs=_int_levels(epochs),
    )


def _as_grid(grid) -> pd.DataFrame:
    if isinstance(grid, pd.DataFrame):
        return grid.reset_index(drop=True)
    if isinstance(grid, dict):
        return expand_grid(**grid)
    return pd.DataFrame(list(grid))


def _grid_records(grid: pd.DataFrame, spec: ModelSpec = None) -> list[dict]:
    """Validated grid rows as plain dicts, in enumeration order."""
    spec = spec or ModelSpec()
    if grid.empty:
        raise InvalidHyperparameter("Hyperparameter grid is empty")
    unknown = [name for name in grid.columns if name not in TUNABLE_PARAMS]
    if unknown:
        raise InvalidHyperparameter(f"Cannot tune {unknown}; tunable parameters are {list(TUNABLE_PARAMS)}")

    records = grid.to_dict('records')
    for params in records:
        candidate = {'hidden_units': spec.hidden_units, 'epochs': spec.epochs, 'penalty': spec.penalty, **params}
        validate_hyperparameters(candidate['hidden_units'], candidate['epochs'], candidate['penalty'])
    return records


def _search_params(params: dict) -> dict:
    """One grid row as a single-candidate GridSearchCV parameter dict."""
    search = {}
    for name, value in params.items():
        if name == 'hidden_units':
            search[TUNABLE_PARAMS[name]] = [(int(value),)]
        elif name == 'epochs':
            search[TUNABLE_PARAMS[name]] = [int(value)]
        else:
            search[TUNABLE_PARAMS[name]] = [float(value)]
    return search


def tune_model(
    train_df: pd.DataFrame,
    spec: ModelSpec,
    grid,
    folds: int = config.CV_FOLDS,
    strata: str = config.TARGET_VARIABLE,
    seed: int = config.RANDOM_STATE,
    outcome: str = config.TARGET_VARIABLE,
    metric: str = config.TUNING_METRIC,
    n_jobs: int = config.N_JOBS,
    categorical_features: list[str] = None,
    numeric_features: list[str] = None,
) -> TuningResult:
    """
    Grid search over stratified k-fold cross-validation.

    Each combination is scored on every fold by fitting the full workflow
    (recipe + network) on the other folds, so the recipe statistics never see
    the held-out rows. Fits run in parallel on a joblib worker pool.

    Args:
        train_df (pd.DataFrame): Training data, including the outcome column.
        spec (ModelSpec): Base specification; grid columns override its fields.
        grid: A DataFrame of combinations, a dict of value lists, or a list of dicts.
        folds (int): Number of cross-validation folds.
        strata (str): Column the folds are stratified on.
        seed (int): Seed for the fold assignment.

    Returns:
        TuningResult: Per-fold and summarised scores for every combination.
    """
    grid = _as_grid(grid)
    records = _grid_records(grid, spec)

    if isinstance(folds, bool) or not isinstance(folds, numbers.Integral) or folds < 2:
        raise ConfigError(f"Cross-validation needs an integer number of folds >= 2, got {folds!r}")
    if strata not in train_df.columns:
        raise ConfigError(f"Stratification column '{strata}' not found in data")
    class_counts = train_df[strata].value_counts()
    class_counts = class_counts[class_counts > 0]
    if (class_counts < folds).any():
        raise InsufficientData(
            f"Every '{strata}' class needs at least {folds} rows for {folds}-fold CV; "
            f"got {class_counts.to_dict()}"
        )

    X, y = split_outcome(train_df, outcome)
    cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=seed)
    splits = list(cv.split(X, train_df[strata]))

    search = GridSearchCV(
        build_workflow(spec, categorical_features, numeric_features, outcome),
        param_grid=[_search_params(params) for params in records],
        cv=splits,
        scoring=metric,
        n_jobs=n_jobs,
        refit=False,
        error_score='raise',
    )
    logging.info(f"Tuning {len(records)} combinations with {folds}-fold CV ({len(records) * folds} fits)...")
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', ConvergenceWarning)
        search.fit(X, y)

    result = _collect_metrics(search.cv_results_, records, folds, metric, tuple(grid.columns))
    best = select_best(result)
    logging.info(f"Best cross-validated {metric}: {result.summary['mean'].max():.4f} with {best}")
    return result


def _collect_metrics(cv_results: dict, records: list[dict], folds: int, metric: str, params: tuple) -> TuningResult:
    scores = np.column_stack([cv_results[f'split{fold}_test_score'] for fold in range(folds)])
    config_ids = [f"Model{i + 1:02d}" for i in range(len(records))]

    rows = []
    for config_id, combo, combo_scores in zip(config_ids, records, scores):
        for fold, score in enumerate(combo_scores):
            rows.append({'config': config_id, **combo, 'fold': f"Fold{fold + 1:02d}", metric: float(score)})
    metrics = pd.DataFrame(rows)

    summary = pd.DataFrame(records)
    summary.insert(0, 'config', config_ids)
    summary['mean'] = scores.mean(axis=1)
    summary['std_err'] = scores.std(axis=1, ddof=1) / math.sqrt(folds)
    summary['n'] = folds
    return TuningResult(metrics=metrics, summary=summary, metric=metric, params=params)


def show_best(result: TuningResult, n: int = 5) -> pd.DataFrame:
    """Top ``n`` combinations by mean score; ties keep grid order."""
    return result.summary.sort_values('mean', ascending=False, kind='mergesort').head(n)


def select_best(result: TuningResult) -> dict:
    """
    The combination with the highest mean score. Ties go to the combination
    that comes first in grid enumeration order.
    """
    best_row = result.summary.loc[result.summary['mean'].idxmax()]
    best = {}
    for name in result.params:
        value = best_row[name]
        best[name] = float(value) if name == 'penalty' else int(value)
    return best


def finalize_model(spec: ModelSpec, params: dict) -> ModelSpec:
    """The base specification with the selected hyperparameters filled in."""
    unknown = [name for name in params if name not in TUNABLE_PARAMS]
    if unknown:
        raise InvalidHyperparameter(f"Cannot finalize unknown parameters {unknown}")
    return replace(spec, **params)


def fit_best(train_df: pd.DataFrame, spec: ModelSpec, result: TuningResult, **fit_kwargs) -> FittedModel:
    """Finalizes ``spec`` with the best combination and fits it on all of ``train_df``."""
    final_spec = finalize_model(spec, select_best(result))
    return fit_model(train_df, final_spec, **fit_kwargs)


def save_best_params(params: dict, path: Path = config.HYPERPARAMETERS_FILE) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(params, f, indent=4)  # indent=4 makes it human-readable
    logging.info(f"Best parameters saved to {path}")
    return path


def load_best_params(path: Path = config.HYPERPARAMETERS_FILE) -> dict:
    with open(path, 'r') as f:
        return json.load(f)
