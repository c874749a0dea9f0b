# segment_mlp/preprocessing.py

import logging

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.compose import ColumnTransformer
from sklearn.feature_selection import VarianceThreshold
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.utils.validation import check_is_fitted

from segment_mlp import config
from segment_mlp.exceptions import ConfigError, SchemaError


class Recipe(TransformerMixin, BaseEstimator):
    """
    Fit-once feature recipe for the survey predictors.

    Steps, in order:
    1. Dummy-encode categorical predictors. The first observed level of each
       column is the reference level and gets no column, so a column with a
       single level disappears entirely.
    2. Drop every column with zero variance in the training data.
    3. Standardize the remaining columns to zero mean and unit (population)
       standard deviation.

    All statistics come from the data passed to ``fit``. ``transform`` only
    reapplies them, so the test set never influences the encoding or scaling.

    Args:
        categorical_features (list[str], optional): Columns to dummy-encode.
            Inferred from ``object``/``category`` dtypes when omitted.
        numeric_features (list[str], optional): Numeric columns. Inferred from
            numeric dtypes when omitted.
        outcome (str, optional): Label column, ignored if present in the input.
            Pass None when the input holds predictors only.
    """

    def __init__(self, categorical_features=None, numeric_features=None, outcome=config.TARGET_VARIABLE):
        self.categorical_features = categorical_features
        self.numeric_features = numeric_features
        self.outcome = outcome

    def _predictors(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.outcome is not None and self.outcome in X.columns:
            return X.drop(columns=[self.outcome])
        return X

    def fit(self, X: pd.DataFrame, y=None):
        X = self._predictors(X)

        if self.categorical_features is None:
            categorical = X.select_dtypes(include=['object', 'category']).columns.tolist()
        else:
            categorical = list(self.categorical_features)
        if self.numeric_features is None:
            numeric = X.select_dtypes(include='number').columns.tolist()
        else:
            numeric = list(self.numeric_features)

        self._check_columns(X, categorical + numeric)
        self.categorical_features_ = categorical
        self.numeric_features_ = numeric

        dummy = ColumnTransformer(
            transformers=[
                ('cat', OneHotEncoder(drop='first', handle_unknown='ignore', sparse_output=False), categorical),
                ('num', 'passthrough', numeric),
            ],
            verbose_feature_names_out=False,
        )
        self.pipeline_ = Pipeline(steps=[
            ('dummy', dummy),
            ('zv', VarianceThreshold(threshold=0.0)),
            ('normalize', StandardScaler()),
        ]).set_output(transform='pandas')

        try:
            self.pipeline_.fit(X[categorical + numeric])
        except ValueError as exc:
            # VarianceThreshold raises when every column is constant.
            raise ConfigError(f"Recipe could not be fitted: {exc}") from exc

        logging.info(
            f"Recipe fitted on {len(X)} rows: {len(self.get_feature_names_out())} predictors kept, "
            f"{len(self.dropped_columns_)} dropped for zero variance"
        )
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, 'pipeline_')
        X = self._predictors(X)
        columns = self.categorical_features_ + self.numeric_features_
        self._check_columns(X, columns)

        scaler = self.pipeline_.named_steps['normalize']
        degenerate = ~np.isclose(scaler.scale_, np.sqrt(scaler.var_))
        if degenerate.any():
            names = self.means_.index[degenerate].tolist()
            raise ConfigError(f"Zero standard deviation for columns {names}; cannot normalize")

        return self.pipeline_.transform(X[columns])

    def get_feature_names_out(self, input_features=None) -> np.ndarray:
        check_is_fitted(self, 'pipeline_')
        return self.pipeline_.get_feature_names_out()

    @staticmethod
    def _check_columns(X: pd.DataFrame, columns: list[str]):
        missing_columns = [col for col in columns if col not in X.columns]
        if missing_columns:
            raise SchemaError(f"Missing required columns: {', '.join(missing_columns)}")

    # --- Learned parameters ---

    @property
    def levels_(self) -> dict:
        """Observed levels per categorical predictor; the first is the reference level."""
        check_is_fitted(self, 'pipeline_')
        if not self.categorical_features_:
            return {}
        encoder = self.pipeline_.named_steps['dummy'].named_transformers_['cat']
        return {col: list(levels) for col, levels in zip(self.categorical_features_, encoder.categories_)}

    @property
    def dropped_columns_(self) -> list[str]:
        """Single-level categorical predictors plus dummy/numeric columns removed for zero variance."""
        check_is_fitted(self, 'pipeline_')
        single_level = [col for col, levels in self.levels_.items() if len(levels) == 1]
        dummy_names = self.pipeline_.named_steps['dummy'].get_feature_names_out()
        support = self.pipeline_.named_steps['zv'].get_support()
        return single_level + dummy_names[~support].tolist()

    @property
    def means_(self) -> pd.Series:
        check_is_fitted(self, 'pipeline_')
        scaler = self.pipeline_.named_steps['normalize']
        return pd.Series(scaler.mean_, index=self.get_feature_names_out())

    @property
    def stds_(self) -> pd.Series:
        check_is_fitted(self, 'pipeline_')
        scaler = self.pipeline_.named_steps['normalize']
        return pd.Series(np.sqrt(scaler.var_), index=self.get_feature_names_out())


def create_recipe(
    categorical_features: list[str] = None,
    numeric_features: list[str] = None,
    outcome: str = config.TARGET_VARIABLE,
) -> Recipe:
    """
    Creates the (unfitted) preprocessing recipe for the survey predictors.

    Returns:
        Recipe: A scikit-learn transformer, usable on its own or as the first
                step of a model pipeline.
    """
    return Recipe(
        categorical_features=categorical_features,
        numeric_features=numeric_features,
        outcome=outcome,
    )
