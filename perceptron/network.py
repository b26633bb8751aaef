"""
network.py
~~~~~~~~~~

A fully-connected feedforward network trained by online stochastic
gradient descent.

Each call to ``train`` runs one forward pass and one backpropagation step
per example, in the order given. Shuffling, epochs and early stopping are
left to the caller.

The activation cache filled by ``feed_forward`` is read by
``back_propagate``, so the two must be called in pairs for the same
example. There is no guard against interleaving passes for different
examples on one instance.
"""

import logging
from dataclasses import dataclass, field
from numbers import Integral
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from perceptron import model_persistence
from perceptron.activations import SIGMOID, Activation
from perceptron.encoding import decode
from perceptron.errors import (
    ContractViolation,
    InputShapeMismatch,
    TargetShapeMismatch,
)
from perceptron.learning_rate import LearningRatePolicy, resolve_learning_rate
from perceptron.matrix import Matrix

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """
    Outcome of scoring a network against labelled examples.

    Attributes:
        accuracy: Percentage of correctly classified examples (0 to 100)
        correct: Number of correct classifications
        incorrect: Number of incorrect classifications
        misses: Incorrect classifications tallied by true class index
        outputs: Raw output vectors, when requested
    """

    accuracy: float
    correct: int
    incorrect: int
    misses: List[int]
    outputs: Optional[List[List[float]]] = field(default=None, repr=False)

    @property
    def total(self) -> int:
        return self.correct + self.incorrect


class Network:
    """
    Multilayer perceptron with one shared activation for every layer.

    Attributes:
        layers: Layer widths, input first
        weights: weights[i] is a (layers[i+1] x layers[i]) matrix
        biases: biases[i] is a (layers[i+1] x 1) column
        activation_cache: Columns from the latest forward pass, input first
        learning_rate: Scalar policy applied to every gradient cell
        activation: Activation used by every layer
    """

    def __init__(
        self,
        layers: Sequence[int],
        learning_rate: Union[float, LearningRatePolicy] = 0.01,
        activation: Activation = SIGMOID,
        seed: Optional[int] = None
    ):
        """
        Create a network with uniformly random weights and biases in [-1, 1).

        Args:
            layers: Layer widths, at least two, each a positive integer
            learning_rate: Constant multiplier or a scalar-to-scalar function
            activation: Forward/derivative pair shared by every layer
            seed: Optional seed for reproducible initialisation

        Raises:
            ValueError: If the topology is invalid
            TypeError: If learning_rate is neither a number nor callable
        """
        layers = list(layers)
        if len(layers) < 2:
            raise ValueError(
                f"A network needs at least 2 layers, got {len(layers)}"
            )
        if any(not isinstance(n, Integral) or isinstance(n, bool) or n < 1 for n in layers):
            raise ValueError(f"Layer widths must be positive integers, got {layers}")

        self.layers = [int(n) for n in layers]
        self.learning_rate = resolve_learning_rate(learning_rate)
        self.activation = activation
        self.activation_cache: List[Matrix] = []

        self.weights: List[Matrix] = []
        self.biases: List[Matrix] = []
        for i in range(len(layers) - 1):
            weight_seed = None if seed is None else seed + 2 * i
            bias_seed = None if seed is None else seed + 2 * i + 1
            self.weights.append(Matrix.random(layers[i + 1], layers[i], seed=weight_seed))
            self.biases.append(Matrix.random(layers[i + 1], 1, seed=bias_seed))

        logger.debug(
            f"Created network {self.model_name()} with "
            f"activation '{activation.name}'"
        )

    def feed_forward(self, inputs: Sequence[float]) -> List[float]:
        """
        Propagate an input vector through every layer.

        Replaces the activation cache with this pass.

        Args:
            inputs: Vector of length layers[0]

        Returns:
            The output layer's values

        Raises:
            InputShapeMismatch: If the input length is wrong
        """
        if len(inputs) != self.layers[0]:
            raise InputShapeMismatch(
                f"Expected {self.layers[0]} inputs, got {len(inputs)}"
            )

        current = Matrix.column(inputs)
        cache = [current]

        for weight, bias in zip(self.weights, self.biases):
            current = weight.multiply(current).add(bias).map(self.activation.forward)
            cache.append(current)

        self.activation_cache = cache
        return current.to_vector()

    def back_propagate(self, targets: Sequence[float]) -> None:
        """
        Update weights and biases from the error of the latest forward pass.

        The first gradient is the activation derivative of the output
        column; every later one is the derivative of the cached column
        entering the layer being updated. Errors are pushed back through
        the already-updated weights.

        Args:
            targets: Expected output vector of length layers[-1]

        Raises:
            TargetShapeMismatch: If the target length is wrong
            ContractViolation: If no forward pass has been run
        """
        if len(targets) != self.layers[-1]:
            raise TargetShapeMismatch(
                f"Expected {self.layers[-1]} targets, got {len(targets)}"
            )
        if len(self.activation_cache) != len(self.layers):
            raise ContractViolation(
                "back_propagate requires a preceding feed_forward call"
            )

        outputs = self.activation_cache[-1]
        errors = Matrix.column(targets).subtract(outputs)
        gradients = outputs.map(self.activation.derivative)

        for i in reversed(range(len(self.layers) - 1)):
            gradients = gradients.dot_multiply(errors).map(self.learning_rate)

            self.weights[i] = self.weights[i].add(
                gradients.multiply(self.activation_cache[i].transpose())
            )
            self.biases[i] = self.biases[i].add(gradients)

            errors = self.weights[i].transpose().multiply(errors)
            gradients = self.activation_cache[i].map(self.activation.derivative)

    def train(
        self,
        inputs: Sequence[Sequence[float]],
        targets: Sequence[Sequence[float]],
        callback: Optional[Callable[[Dict[str, Any]], None]] = None
    ) -> None:
        """
        Run one gradient step per example, in order.

        Args:
            inputs: Input vectors
            targets: Target vectors, paired with inputs by position
            callback: Optional function called with a progress dict
                ({'processed', 'total', 'progress'}) each time the
                completed percentage advances

        Raises:
            ContractViolation: If inputs and targets differ in count
        """
        if len(inputs) != len(targets):
            raise ContractViolation(
                f"Got {len(inputs)} inputs but {len(targets)} targets"
            )

        total = len(inputs)
        logger.info(f"Training {self.model_name()} with {total} examples")

        last_progress = 0
        for processed, (x, y) in enumerate(zip(inputs, targets), start=1):
            self.feed_forward(x)
            self.back_propagate(y)

            progress = 100 * processed // total
            if progress != last_progress:
                last_progress = progress
                logger.debug(f"Training progress: {progress}%")
                if callback is not None:
                    callback({
                        'processed': processed,
                        'total': total,
                        'progress': progress
                    })

        logger.info("Completed training")

    def validate(
        self,
        examples: Sequence[Sequence[float]],
        labels: Sequence[Sequence[float]],
        keep_outputs: bool = False
    ) -> ValidationResult:
        """
        Score the network on labelled examples without changing it.

        Each example is classified by the index of its largest output and
        compared with the index of the 1.0 entry of its one-hot label.

        Args:
            examples: Input vectors
            labels: One-hot label vectors of length layers[-1]
            keep_outputs: Also return every raw output vector

        Returns:
            ValidationResult with the accuracy percentage and tallies

        Raises:
            ContractViolation: If there are no examples, or examples and
                labels differ in count
            TargetShapeMismatch: If a label has the wrong length
        """
        if len(examples) != len(labels):
            raise ContractViolation(
                f"Got {len(examples)} examples but {len(labels)} labels"
            )
        if len(examples) == 0:
            raise ContractViolation("Cannot validate against an empty set")

        correct = 0
        incorrect = 0
        misses = [0] * self.layers[-1]
        outputs: Optional[List[List[float]]] = [] if keep_outputs else None

        for example, label in zip(examples, labels):
            if len(label) != self.layers[-1]:
                raise TargetShapeMismatch(
                    f"Expected labels of length {self.layers[-1]}, got {len(label)}"
                )
            result = self.feed_forward(example)
            if outputs is not None:
                outputs.append(result)

            expected = decode(label)
            if decode(result) == expected:
                correct += 1
            else:
                incorrect += 1
                misses[expected] += 1

        accuracy = 100.0 * correct / (correct + incorrect)

        logger.info(
            f"Right: {correct}, Wrong: {incorrect}, "
            f"Percent: {accuracy:.2f}%, Failed: {misses}"
        )

        return ValidationResult(
            accuracy=accuracy,
            correct=correct,
            incorrect=incorrect,
            misses=misses,
            outputs=outputs
        )

    def model_name(self) -> str:
        """Layer widths joined by dashes, e.g. ``784-800-10``."""
        return '-'.join(str(n) for n in self.layers)

    def save(self, path: str, include_topology: bool = False) -> None:
        """Write weights and biases to ``path`` as JSON."""
        model_persistence.save_network(self, path, include_topology)

    def load(self, path: str) -> None:
        """Replace weights and biases with those stored at ``path``."""
        model_persistence.load_network(self, path)
