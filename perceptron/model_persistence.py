"""
model_persistence.py
~~~~~~~~~~~~~~~~~~~~

JSON persistence for network weights and biases.

A saved document has two fields, ``weights`` and ``biases``, each a list
with one row-major nested array per layer transition. A ``layers`` field
holding the topology is written only on request; when present, loading
checks it against the receiving network. Every matrix shape is checked
against the receiving network's topology either way.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from perceptron.errors import (
    LoadError,
    MalformedDocument,
    SaveError,
    TopologyMismatch,
)
from perceptron.matrix import Matrix

# Configure module logger
logger = logging.getLogger(__name__)


class NetworkEncoder(json.JSONEncoder):
    """JSON encoder that also accepts matrices and numpy values."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (Matrix, np.ndarray)):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return super().default(obj)


def to_document(network, include_topology: bool = False) -> Dict[str, Any]:
    """
    Snapshot a network's parameters as plain nested lists.

    Args:
        network: Network whose weights and biases are captured
        include_topology: Also record the layer widths

    Returns:
        dict: {'weights': [...], 'biases': [...]} plus optional 'layers'
    """
    document: Dict[str, Any] = {
        'weights': [matrix.tolist() for matrix in network.weights],
        'biases': [matrix.tolist() for matrix in network.biases],
    }
    if include_topology:
        document['layers'] = list(network.layers)
    return document


def _read_matrices(
    document: Dict[str, Any],
    key: str,
    expected_shapes: List[Tuple[int, int]]
) -> List[Matrix]:
    if key not in document:
        raise MalformedDocument(f"Missing field '{key}'")

    entries = document[key]
    if not isinstance(entries, list):
        raise MalformedDocument(f"Field '{key}' must be a list")
    if len(entries) != len(expected_shapes):
        raise TopologyMismatch(
            f"Field '{key}' has {len(entries)} matrices, "
            f"expected {len(expected_shapes)}"
        )

    matrices = []
    for i, (entry, expected) in enumerate(zip(entries, expected_shapes)):
        try:
            matrix = Matrix.from_data(entry)
        except (TypeError, ValueError) as e:
            raise MalformedDocument(f"{key}[{i}] is not a numeric matrix: {e}") from e

        if matrix.shape != expected:
            raise TopologyMismatch(
                f"{key}[{i}] has shape {matrix.shape}, expected {expected}"
            )
        matrices.append(matrix)
    return matrices


def from_document(
    document: Any,
    layers: Sequence[int]
) -> Tuple[List[Matrix], List[Matrix]]:
    """
    Rebuild weight and bias matrices from a saved document.

    Args:
        document: Parsed JSON document
        layers: Topology of the network that will receive the matrices

    Returns:
        tuple: (weights, biases)

    Raises:
        MalformedDocument: If fields are missing or not numeric matrices
        TopologyMismatch: If the document does not fit ``layers``
    """
    if not isinstance(document, dict):
        raise MalformedDocument(
            f"Expected a JSON object, got {type(document).__name__}"
        )

    header = document.get('layers')
    if header is not None and not isinstance(header, list):
        raise MalformedDocument("Field 'layers' must be a list")
    if header is not None and header != list(layers):
        raise TopologyMismatch(
            f"Document was saved from layers {header}, network has {list(layers)}"
        )

    weight_shapes = [(layers[i + 1], layers[i]) for i in range(len(layers) - 1)]
    bias_shapes = [(layers[i + 1], 1) for i in range(len(layers) - 1)]

    weights = _read_matrices(document, 'weights', weight_shapes)
    biases = _read_matrices(document, 'biases', bias_shapes)
    return weights, biases


def save_network(network, path: str, include_topology: bool = False) -> None:
    """
    Write a network's weights and biases to a JSON file.

    The parent directory must already exist.

    Args:
        network: Network to save
        path: Full path of the file to create or overwrite
        include_topology: Also record the layer widths

    Raises:
        SaveError: If the file cannot be created or written
    """
    document = to_document(network, include_topology)

    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(document, f, cls=NetworkEncoder)
    except OSError as e:
        logger.error(f"Unable to write save file '{path}': {e}")
        raise SaveError(f"Unable to write save file '{path}'") from e

    logger.info(f"Saved network {network.model_name()} to '{path}'")


def _read_document(path: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        logger.error(f"Unable to read save file '{path}': {e}")
        raise LoadError(f"Unable to read save file '{path}'") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Save file '{path}' is not valid JSON: {e}")
        raise MalformedDocument(f"Save file '{path}' is not valid JSON") from e


def load_network(network, path: str) -> None:
    """
    Replace a network's weights and biases with those saved at ``path``.

    Nothing is replaced unless the whole document is valid. The activation
    cache is cleared since it no longer matches the parameters.

    Args:
        network: Network receiving the parameters
        path: Path of a file written by save_network

    Raises:
        LoadError: If the file cannot be read
        MalformedDocument: If the file is not a valid document
        TopologyMismatch: If the document does not fit the network
    """
    document = _read_document(path)
    weights, biases = from_document(document, network.layers)

    network.weights = weights
    network.biases = biases
    network.activation_cache = []

    logger.info(f"Loaded network {network.model_name()} from '{path}'")


def read_topology(path: str) -> Optional[List[int]]:
    """
    Layer widths recorded in a save file, or None if it has no header.

    Raises:
        LoadError: If the file cannot be read
        MalformedDocument: If the file is not a JSON object
    """
    document = _read_document(path)
    if not isinstance(document, dict):
        raise MalformedDocument(
            f"Expected a JSON object, got {type(document).__name__}"
        )

    layers = document.get('layers')
    if layers is not None and not isinstance(layers, list):
        raise MalformedDocument("Field 'layers' must be a list")
    return layers
