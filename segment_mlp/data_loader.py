# segment_mlp/data_loader.py

import logging
from pathlib import Path

import pandas as pd

from segment_mlp import config
from segment_mlp.exceptions import DataAccessError, SchemaError


def read_survey_file(data_path: Path) -> pd.DataFrame:
    """
    Reads the raw survey CSV without any cleaning.

    Raises:
        DataAccessError: If the file is missing, empty or cannot be parsed.
    """
    try:
        df = pd.read_csv(data_path, skipinitialspace=True)
    except FileNotFoundError as exc:
        raise DataAccessError(f"Data file not found at {data_path}") from exc
    except pd.errors.EmptyDataError as exc:
        raise DataAccessError(f"Data file at {data_path} is empty") from exc
    except pd.errors.ParserError as exc:
        raise DataAccessError(f"Could not parse data file at {data_path}: {exc}") from exc

    logging.info(f"Read {len(df)} raw survey rows from {data_path}")
    return df


def map_segment_codes(
    df: pd.DataFrame,
    source: str = config.LABEL_SOURCE_COLUMN,
    target: str = config.TARGET_VARIABLE,
    codes: dict = None,
    drop_unmapped: bool = False,
) -> pd.DataFrame:
    """
    Renames the raw label column and maps its numeric codes to segment names.

    Codes outside the mapping (including missing values) are never turned into
    a class. By default they raise; with ``drop_unmapped=True`` the affected
    rows are removed and a warning is logged.

    Args:
        df (pd.DataFrame): Raw survey rows.
        source (str): Name of the raw code column.
        target (str): Name of the label column to create.
        codes (dict): Raw code -> segment name. Defaults to ``config.SEGMENT_CODES``.
        drop_unmapped (bool): Drop rows with unmapped codes instead of raising.

    Returns:
        pd.DataFrame: A copy with ``source`` replaced by the categorical ``target``.
    """
    codes = config.SEGMENT_CODES if codes is None else codes
    if source not in df.columns:
        raise SchemaError(f"Label column '{source}' not found in data")

    df = df.rename(columns={source: target})
    mapped = df[target].map(codes)
    unmapped = mapped.isna()

    if unmapped.any():
        bad_codes = sorted(df.loc[unmapped, target].astype(str).unique())
        message = (
            f"{int(unmapped.sum())} rows have unmapped '{source}' codes {bad_codes}; "
            f"expected one of {sorted(codes)}"
        )
        if not drop_unmapped:
            raise SchemaError(message)
        logging.warning(f"{message}. Dropping them.")
        df = df.loc[~unmapped].copy()
        mapped = mapped.loc[~unmapped]

    segment_dtype = pd.CategoricalDtype(categories=list(dict.fromkeys(codes.values())))
    df[target] = mapped.astype(segment_dtype)
    return df


def prepare_survey_data(
    raw_df: pd.DataFrame,
    categorical_features: list[str] = None,
    numeric_features: list[str] = None,
    source: str = config.LABEL_SOURCE_COLUMN,
    target: str = config.TARGET_VARIABLE,
    codes: dict = None,
    drop_unmapped: bool = False,
) -> pd.DataFrame:
    """
    Turns raw survey rows into the modeling dataset: label mapped, demographic
    columns cast to ``category``, and only the label plus predictors kept.

    Raises:
        SchemaError: If an expected column is missing, a numeric predictor is
            not numeric, or a label code is unmapped.
    """
    categorical_features = config.CATEGORICAL_FEATURES if categorical_features is None else categorical_features
    numeric_features = config.NUMERIC_FEATURES if numeric_features is None else numeric_features

    expected = [source] + list(categorical_features) + list(numeric_features)
    missing_columns = [col for col in expected if col not in raw_df.columns]
    if missing_columns:
        raise SchemaError(f"Missing required columns: {', '.join(missing_columns)}")

    for col in numeric_features:
        if not pd.api.types.is_numeric_dtype(raw_df[col]):
            raise SchemaError(f"Column '{col}' must be numeric, found dtype {raw_df[col].dtype}")

    df = map_segment_codes(raw_df, source=source, target=target, codes=codes, drop_unmapped=drop_unmapped)

    for col in categorical_features:
        df[col] = df[col].astype('category')

    df = df[[target] + list(categorical_features) + list(numeric_features)]
    logging.info(f"Survey data prepared. Dataset shape: {df.shape}")
    return df


def load_survey_data(data_path: Path = config.DATA_FILE, **kwargs) -> pd.DataFrame:
    """Reads the survey file and prepares it; keyword arguments go to ``prepare_survey_data``."""
    return prepare_survey_data(read_survey_file(data_path), **kwargs)
