# segment_mlp/reporting.py

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import ConfusionMatrixDisplay

from segment_mlp import config
from segment_mlp.evaluation import augment
from segment_mlp.exceptions import SchemaError
from segment_mlp.tuning import TuningResult


def save_tuning_plot(result: TuningResult, output_path: Path = config.TUNING_PLOT_FILE) -> Path:
    """
    Plots mean cross-validated score against the first tuned parameter, one
    line per value of the second and one panel per value of the third.
    """
    summary = result.summary.copy()
    x, *rest = result.params
    hue = rest[0] if len(rest) > 0 else None
    col = rest[1] if len(rest) > 1 else None
    if hue is not None:
        # Plot discrete values rather than a continuous colour scale
        summary[hue] = summary[hue].map(lambda v: f"{v:g}")

    grid = sns.relplot(
        data=summary, x=x, y='mean', hue=hue, col=col,
        kind='line', marker='o', palette='viridis' if hue else None,
        height=4, aspect=1.1,
    )
    grid.set_axis_labels(x.replace('_', ' ').title(), f"Mean CV {result.metric}")
    grid.figure.suptitle(f"Cross-validated {result.metric} by hyperparameter combination", y=1.03)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    grid.savefig(output_path, bbox_inches='tight')
    plt.close(grid.figure)
    logging.info(f"Tuning plot saved to {output_path}")
    return output_path


def save_confusion_matrix(model, data, truth: str = config.TARGET_VARIABLE,
                          output_path: Path = config.CONFUSION_MATRIX_FILE) -> Path:
    """Saves a confusion matrix of true vs. predicted segments for ``data``."""
    if truth not in data.columns:
        raise SchemaError(f"Truth column '{truth}' not found in evaluation data")
    augmented = augment(model, data)

    fig, ax = plt.subplots(figsize=(8, 6))
    ConfusionMatrixDisplay.from_predictions(
        augmented[truth].astype(str),
        augmented['.pred_class'].astype(str),
        labels=[str(c) for c in model.classes],
        cmap='Blues',
        ax=ax,
    )
    ax.set_title('Confusion Matrix')

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path)
    plt.close(fig)
    logging.info(f"Confusion matrix saved to {output_path}")
    return output_path
