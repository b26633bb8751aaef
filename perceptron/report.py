"""
report.py
~~~~~~~~~

PNG renderings of validation results, returned as base64 strings so
they can be embedded in HTML or JSON by the caller.
"""

import base64
import logging
from io import BytesIO
from typing import Sequence, Tuple

# Use non-GUI backend for matplotlib (no display on training hosts)
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from perceptron.network import ValidationResult

logger = logging.getLogger(__name__)


def _figure_to_base64(fig) -> str:
    buffer = BytesIO()
    fig.savefig(buffer, format='png', bbox_inches='tight')
    plt.close(fig)
    return base64.b64encode(buffer.getvalue()).decode('utf-8')


def render_misses(result: ValidationResult) -> str:
    """
    Bar chart of misclassifications per true class.

    Args:
        result: Outcome of Network.validate

    Returns:
        Base64-encoded PNG image string
    """
    fig, ax = plt.subplots(figsize=(6, 3))
    ax.bar(range(len(result.misses)), result.misses, color='tab:red')
    ax.set_xticks(range(len(result.misses)))
    ax.set_xlabel('True class')
    ax.set_ylabel('Misses')
    ax.set_title(
        f"Accuracy {result.accuracy:.2f}% "
        f"({result.correct}/{result.total})"
    )
    logger.debug(f"Rendering miss chart for {len(result.misses)} classes")
    return _figure_to_base64(fig)


def render_example(
    inputs: Sequence[float],
    predicted: int,
    actual: int,
    shape: Tuple[int, int] = (28, 28)
) -> str:
    """
    Render an input vector as a grayscale image.

    Args:
        inputs: Flat input vector with shape[0] * shape[1] values in [0, 1]
        predicted: Class the network predicted
        actual: Correct class
        shape: Image (rows, cols) the vector is reshaped to

    Returns:
        Base64-encoded PNG image string

    Raises:
        ValueError: If inputs cannot be reshaped to shape
    """
    image = np.asarray(inputs, dtype=np.float64).reshape(shape)

    fig, ax = plt.subplots(figsize=(3, 3))
    ax.imshow(image, cmap='gray', vmin=0.0, vmax=1.0)
    ax.set_title(f"Predicted: {predicted} | Actual: {actual}")
    ax.axis('off')
    return _figure_to_base64(fig)
