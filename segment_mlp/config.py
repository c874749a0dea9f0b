# segment_mlp/config.py

from pathlib import Path

# --- 1. PROJECT ROOT ---
# Everything else is built relative to this file so paths resolve the same way
# from the repo root, from tests/ or from an installed package.
BASE_DIR = Path(__file__).resolve().parent.parent

# --- 2. PATHS ---

# --- Input Data Paths ---
DATA_DIR = BASE_DIR / "data"
DATA_FILE = DATA_DIR / "roomba_survey.csv"

# --- Output & Artifact Paths ---
# Directories are created by whichever step writes into them.
OUTPUT_DIR = BASE_DIR / "outputs"
MODEL_DIR = BASE_DIR / "models"
PLOTS_DIR = BASE_DIR / "plots"

# Hyperparameter Tuning Artifacts
HYPERPARAMETERS_FILE = MODEL_DIR / "best_hyperparameters.json"
TUNING_RESULTS_FILE = OUTPUT_DIR / "tuning_results.csv"
TUNING_PLOT_FILE = PLOTS_DIR / "tuning_accuracy.png"

# Classification Model Artifact
CLASSIFICATION_MODEL_FILE = MODEL_DIR / "segment_classifier_mlp.joblib"
CONFUSION_MATRIX_FILE = PLOTS_DIR / "final_confusion_matrix.png"

# --- 3. DATA SCHEMA ---

# The survey stores the segment as a numeric code in this column.
LABEL_SOURCE_COLUMN = 'CurrentOwned'
TARGET_VARIABLE = 'segment'
SEGMENT_CODES = {
    1: 'own',
    3: 'shopping',
    4: 'considering',
}

CATEGORICAL_FEATURES = [
    'D1Gender',
    'D2HomeType',
    'D3Neighborhood',
    'D4MaritalStatus',
    'D5Education',
]

NUMERIC_FEATURES = [
    # Cleaning attitudes (1-5 agreement scale)
    *[f'CleaningAttitudes_{i}' for i in range(1, 12)],
    # Household and behaviour
    'D6HouseholdSize',
    'D7Pets',
    'D8Income',
]

# --- 4. MODELING PARAMETERS ---

# --- General ---
RANDOM_STATE = 42  # For reproducibility

# --- Split ---
TRAIN_PROP = 0.75

# --- Network defaults (overridden by tuning) ---
HIDDEN_UNITS = 5
EPOCHS = 100
PENALTY = 0.0
ACTIVATION = 'logistic'

# --- Tuning ---
CV_FOLDS = 10
GRID_LEVELS = 3
HIDDEN_UNITS_RANGE = (1, 10)
PENALTY_RANGE = (1e-10, 1.0)  # spaced on a log10 scale
EPOCHS_RANGE = (10, 1000)
TUNING_METRIC = 'accuracy'
N_JOBS = -1
