"""
encoding.py
~~~~~~~~~~~

Conversions between class indices and network vectors.
"""

from typing import List, Sequence

import numpy as np

from perceptron.errors import EmptyVectorError

DEFAULT_CLASSES = 10


def one_hot_encode(value: int, width: int = DEFAULT_CLASSES) -> List[float]:
    """
    Encode a class index as a one-hot vector.

    Values outside [0, width) give an all-zero vector rather than an error.

    Example:
        >>> one_hot_encode(3, 5)
        [0.0, 0.0, 0.0, 1.0, 0.0]
    """
    vector = [0.0] * width
    if 0 <= value < width:
        vector[value] = 1.0
    return vector


def decode(vector: Sequence[float]) -> int:
    """
    Index of the largest entry; ties resolve to the earliest index.

    Raises:
        EmptyVectorError: If vector is empty
    """
    if len(vector) == 0:
        raise EmptyVectorError("Cannot decode an empty vector")
    # np.argmax returns the first occurrence of the maximum
    return int(np.argmax(np.asarray(vector, dtype=np.float64)))
