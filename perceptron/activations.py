"""
activations.py
~~~~~~~~~~~~~~

Elementwise activation functions.

An Activation pairs a forward function with its derivative. The derivative
of SIGMOID takes the activation *output* a = sigmoid(x), not the raw input,
and returns a * (1 - a); backpropagation relies on this convention.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict

ScalarFunction = Callable[[float], float]


@dataclass(frozen=True)
class Activation:
    """A named forward/derivative pair of pure scalar functions."""

    name: str
    forward: ScalarFunction
    derivative: ScalarFunction


def _identity(x: float) -> float:
    return x


def _identity_derivative(_: float) -> float:
    return 1.0


def _sigmoid(x: float) -> float:
    # Split on sign so math.exp never overflows
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _sigmoid_derivative(a: float) -> float:
    return a * (1.0 - a)


IDENTITY = Activation('identity', _identity, _identity_derivative)
SIGMOID = Activation('sigmoid', _sigmoid, _sigmoid_derivative)

_BUILTINS: Dict[str, Activation] = {
    IDENTITY.name: IDENTITY,
    SIGMOID.name: SIGMOID,
}


def custom(
    name: str,
    forward: ScalarFunction,
    derivative: ScalarFunction
) -> Activation:
    """
    Create a user-defined activation.

    Args:
        name: Label stored alongside saved models
        forward: Pure scalar function applied after each linear step
        derivative: Derivative expressed in terms of the forward output

    Raises:
        ValueError: If name shadows a built-in activation
    """
    if name in _BUILTINS:
        raise ValueError(f"'{name}' is a built-in activation name")
    return Activation(name, forward, derivative)


def get_activation(name: str) -> Activation:
    """
    Look up a built-in activation by name.

    Raises:
        KeyError: If no built-in activation has that name
    """
    try:
        return _BUILTINS[name]
    except KeyError:
        raise KeyError(
            f"Unknown activation '{name}', expected one of {sorted(_BUILTINS)}"
        ) from None
