# segment_mlp/train.py

"""
This script runs the end-to-end segment classification pipeline:
1.  Loads the survey and maps the raw ownership codes to segments.
2.  Splits the data into stratified training and test sets.
3.  Tunes hidden units, penalty and epochs with cross-validation.
4.  Fits the best network (recipe included) on the full training set.
5.  Evaluates accuracy on the held-out test set.
6.  Saves the model, the tuning results and the diagnostic plots.
"""

import logging
from pathlib import Path

from segment_mlp import config
from segment_mlp.data_loader import load_survey_data
from segment_mlp.data_split import split_data
from segment_mlp.evaluation import classification_summary
from segment_mlp.model import ModelSpec, save_model
from segment_mlp.reporting import save_confusion_matrix, save_tuning_plot
from segment_mlp.tuning import fit_best, regular_grid, save_best_params, tune_model


def run_training(data_path: Path = config.DATA_FILE, folds: int = config.CV_FOLDS,
                 levels: int = config.GRID_LEVELS, n_jobs: int = config.N_JOBS) -> dict:
    """
    Executes the training and evaluation pipeline and returns the test metrics
    together with the selected hyperparameters.
    """
    # --- 1. Load Data ---
    logging.info("Step 1/6: Loading survey data...")
    survey_df = load_survey_data(data_path)

    # --- 2. Data Split ---
    logging.info("Step 2/6: Splitting data into training and test sets...")
    train_df, test_df = split_data(survey_df, prop=config.TRAIN_PROP, seed=config.RANDOM_STATE)

    # --- 3. Tune ---
    logging.info("Step 3/6: Tuning hidden units, penalty and epochs...")
    spec = ModelSpec()
    result = tune_model(
        train_df, spec, regular_grid(levels=levels),
        folds=folds, seed=config.RANDOM_STATE, n_jobs=n_jobs,
    )
    config.TUNING_RESULTS_FILE.parent.mkdir(parents=True, exist_ok=True)
    result.summary.to_csv(config.TUNING_RESULTS_FILE, index=False)
    save_best_params(result.best_params, config.HYPERPARAMETERS_FILE)
    save_tuning_plot(result, config.TUNING_PLOT_FILE)

    # --- 4. Fit the Final Model ---
    logging.info("Step 4/6: Training the final model on the full training set...")
    final_model = fit_best(train_df, spec, result)

    # --- 5. Evaluate on Test Set ---
    logging.info("Step 5/6: Evaluating on the held-out test set...")
    summary = classification_summary(final_model, test_df)
    logging.info(f"Final accuracy on test set: {summary['accuracy']:.4f}")
    save_confusion_matrix(final_model, test_df, output_path=config.CONFUSION_MATRIX_FILE)

    # --- 6. Save the Final Model ---
    logging.info("Step 6/6: Saving final model...")
    save_model(final_model, config.CLASSIFICATION_MODEL_FILE)

    return {"best_params": result.best_params, **summary}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
    run_training()
