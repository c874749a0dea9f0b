# segment_mlp/data_split.py

import logging

import pandas as pd
from sklearn.model_selection import train_test_split

from segment_mlp import config
from segment_mlp.exceptions import ConfigError, InsufficientData


def split_data(
    df: pd.DataFrame,
    prop: float = config.TRAIN_PROP,
    strata: str = config.TARGET_VARIABLE,
    seed: int = config.RANDOM_STATE,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Splits the dataset into training and test sets, stratified on ``strata``.

    The training set gets ``floor(prop * len(df))`` rows. Within each class the
    allocation follows scikit-learn's stratified rounding, so every class lands
    within one row of ``prop`` times its size. Row indices are kept, which makes
    the two subsets disjoint and together equal to the input.

    Args:
        df (pd.DataFrame): The full dataset.
        prop (float): Proportion of rows for training, strictly between 0 and 1.
        strata (str): Column to stratify on.
        seed (int): Random seed; identical seed and row order give an identical split.

    Returns:
        tuple[pd.DataFrame, pd.DataFrame]: ``(train, test)``.
    """
    if not 0 < prop < 1:
        raise ConfigError(f"Train proportion must be in (0, 1), got {prop}")
    if strata not in df.columns:
        raise ConfigError(f"Stratification column '{strata}' not found in data")

    try:
        train, test = train_test_split(
            df,
            train_size=prop,
            random_state=seed,
            stratify=df[strata],  # Keep the class mix the same in both sets
        )
    except ValueError as exc:
        # Raised when a class has a single member or the test set is smaller
        # than the number of classes.
        raise InsufficientData(f"Cannot stratify {len(df)} rows on '{strata}': {exc}") from exc

    logging.info(f"Training set size: {len(train)}")
    logging.info(f"Test set size: {len(test)}")
    return train, test
